"""Reading of the XTF validation log written by ilivalidator.

The XTF log is an INTERLIS transfer of the IliVErrors model. Every
IliVErrors.ErrorLog.Error object becomes one LogEntry; element namespaces are
ignored.
"""

import logging
from pathlib import Path
from xml.etree.ElementTree import Element, iterparse

from interlis_worker.models.job import LogCoordinate, LogEntry

logger = logging.getLogger(__name__)

ERROR_OBJECT_TAG = "IliVErrors.ErrorLog.Error"


def read_xtf_log(path: Path) -> list[LogEntry]:
    """Read all log entries of an XTF log in document order.

    Raises:
        xml.etree.ElementTree.ParseError: If the log is not well-formed XML
    """
    entries = []
    for _, element in iterparse(path):
        if _local_name(element.tag) != ERROR_OBJECT_TAG:
            continue
        entries.append(
            LogEntry(
                type=_child_text(element, "Type") or "",
                message=_child_text(element, "Message") or "",
                tid=_child_text(element, "Tid"),
                obj_tag=_child_text(element, "ObjTag"),
                data_source=_child_text(element, "DataSource"),
                line=_to_int(_child_text(element, "Line")),
                tech_details=_child_text(element, "TechDetails"),
                geometry=_read_coordinate(element),
            )
        )
        element.clear()

    logger.debug(f"Read {len(entries)} entries from XTF log <{path.name}>")
    return entries


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _find_child(element: Element, name: str) -> Element | None:
    return next((child for child in element if _local_name(child.tag) == name), None)


def _child_text(element: Element, name: str) -> str | None:
    child = _find_child(element, name)
    if child is None or child.text is None:
        return None
    return child.text.strip() or None


def _to_int(value: str | None) -> int | None:
    return int(value) if value is not None and value.isdigit() else None


def _read_coordinate(element: Element) -> LogCoordinate | None:
    geometry = _find_child(element, "Geometry")
    if geometry is None:
        return None

    coord = next((e for e in geometry.iter() if _local_name(e.tag) == "COORD"), None)
    if coord is None:
        return None

    try:
        return LogCoordinate(x=float(_child_text(coord, "C1")), y=float(_child_text(coord, "C2")))
    except (TypeError, ValueError):
        logger.warning(f"Ignoring unreadable log coordinate in <{ERROR_OBJECT_TAG}>")
        return None
