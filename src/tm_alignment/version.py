"""Release identifiers written into alignment files and TMX headers."""

VERSION = "0.1.0"
BUILD = "20261017_0900"
CREATION_TOOL = "tm-alignment"
