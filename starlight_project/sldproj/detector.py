import logging
import math
import os
from contextlib import closing

from .sldproj_io import ProjectVersion, Table, Field, get_values, open_readonly

logger = logging.getLogger(__name__)


def parse_version(value: str | None) -> ProjectVersion:
    """Map a stored version value to a schema generation.

    Legacy documents store a decimal such as ``0.2`` (thousandths of a
    generation number), newer ones store the generation itself (``301``).
    Anything unreadable falls back to the current generation.
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = 0.0
    if not (number > 0 and math.isfinite(number)):
        logger.warning("Incorrect project version: %r", value)
        return ProjectVersion.current()
    if number < 1:
        number *= 1000
    generation = int(round(number))
    for version in sorted(ProjectVersion, reverse=True):
        if version != ProjectVersion.UNKNOWN and generation >= version:
            return version
    logger.warning("Incorrect project version: %r", value)
    return ProjectVersion.current()


def detect(path: os.PathLike | str) -> ProjectVersion:
    if not os.path.isfile(path):
        raise FileNotFoundError(f"No project file at {path}")
    with closing(open_readonly(path)) as connection:
        main_values = get_values(connection, Table.MAIN)
    return parse_version(main_values.get(Field.VERSION))
