"""Read the segments of an XLIFF file produced by a converter."""

import logging
from pathlib import Path
from typing import List, Union

from lxml import etree

from ..exceptions import ConverterFailure
from ..models.segment import Segment
from ..segments.markup import element_to_nodes


logger = logging.getLogger(__name__)


def read_xliff_segments(path: Union[str, Path]) -> List[Segment]:
    """
    Collect the ``source`` of every ``trans-unit`` in document order.

    Namespaces are ignored, so XLIFF 1.2 files with or without the OASIS
    namespace are accepted.

    Args:
        path: XLIFF file.

    Returns:
        One segment per translation unit that has a source.

    Raises:
        ConverterFailure: If the file is missing or not well-formed.
    """
    file_path = str(path)
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    try:
        tree = etree.parse(file_path, parser)
    except (OSError, etree.XMLSyntaxError) as e:
        raise ConverterFailure(
            message=f"Cannot read converted file: {e}",
            file_path=file_path,
        ) from e

    segments: List[Segment] = []
    for unit in tree.getroot().iter("{*}trans-unit"):
        source = unit.find("{*}source")
        if source is None:
            continue
        segments.append(Segment(content=element_to_nodes(source)))
    logger.debug(f"Read {len(segments)} segments from {file_path}")
    return segments
