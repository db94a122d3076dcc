"""
Tender extractor and field normaliser.

Award files are XML, but the number of wrapper levels around the
<TENDER> elements varies between releases. The document is first turned
into a plain tree of dicts / lists / strings:

  - an element with children        → dict keyed by child tag
  - repeated sibling tags           → list under that key
  - a text-only element             → its stripped text
  - an empty element                → None
  - attributes                      → "@name" keys on the element's dict

extract_tenders() then walks that tree and collects every TENDER node at
any depth. normalize() reads the fields of one record through ordered
fallback keys and turns the price text into numbers.
"""

import codecs
import logging
import re
import xml.etree.ElementTree as ET
from typing import Any, Iterable, List, Optional, Sequence, Union

import config
from sources.models import NormalizedRow, TenderRecord

logger = logging.getLogger(__name__)

# ── Field keys, in lookup priority order ─────────────────────────────────────
AWARD_DATE_KEYS  = ("AWARD_NOTI_DATE", "AWARD_DATE")
TENDER_NO_KEYS   = ("TENDER_CASE_NO",)
TENDER_NAME_KEYS = ("TENDER_NAME",)
ORG_NAME_KEYS    = ("ORG_NAME", "UNIT_NAME", "ENTITY_NAME")
PRICE_KEYS       = ("TOTAL_AWARD_PRICE", "AWARD_PRICE")
BIDDER_LIST_KEYS = ("BIDDER_LIST",)
BIDDER_NAME_KEYS = ("BIDDER_SUPP_NAME",)

_XML_DECLARATION = re.compile(r"^\s*<\?xml[^>]*\?>")
_DECLARED_ENCODING = re.compile(rb"^\s*<\?xml[^>]*?encoding\s*=\s*[\"']([A-Za-z0-9._-]+)[\"']")

_LEADING_NUMBER = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)")


class DocumentError(Exception):
    """The payload could not be parsed as an award document."""


# ── Parsing ──────────────────────────────────────────────────────────────────

def _local_name(tag: str) -> str:
    # "{namespace}TENDER" → "TENDER"
    return tag.rsplit("}", 1)[-1]


def _attach(parent: dict, key: str, value: Any) -> None:
    if key in parent:
        existing = parent[key]
        if isinstance(existing, list):
            existing.append(value)
        else:
            parent[key] = [existing, value]
    else:
        parent[key] = value


def _element_to_node(elem: ET.Element) -> Any:
    text = (elem.text or "").strip()
    if len(elem) == 0 and not elem.attrib:
        return text or None

    node: dict = {f"@{_local_name(k)}": v for k, v in elem.attrib.items()}
    if text:
        node["#text"] = text
    return node


def _to_tree(root: ET.Element) -> dict:
    # Explicit stack: award files can nest deeper than the recursion limit.
    tree: dict = {}
    stack = [(root, tree)]
    while stack:
        elem, parent = stack.pop()
        node = _element_to_node(elem)
        _attach(parent, _local_name(elem.tag), node)
        if isinstance(node, dict):
            stack.extend((child, node) for child in reversed(elem))
    return tree


def _decode(payload: bytes) -> str:
    """Decode using the XML declaration's encoding (UTF-8 if none)."""
    if payload.startswith(codecs.BOM_UTF8):
        payload = payload[len(codecs.BOM_UTF8):]
    match = _DECLARED_ENCODING.match(payload)
    encoding = match.group(1).decode("ascii") if match else "utf-8"
    try:
        return payload.decode(encoding)
    except LookupError as exc:
        raise DocumentError(f"unknown encoding {encoding!r}") from exc
    except UnicodeDecodeError as exc:
        raise DocumentError(f"not valid {encoding}: {exc}") from exc


def parse_document(payload: Union[bytes, str]) -> dict:
    """Parse XML into the plain tree described in the module docstring."""
    if not payload or not payload.strip():
        raise DocumentError("empty document")

    text = _decode(payload) if isinstance(payload, bytes) else payload
    # The text is already decoded; expat rejects multi-byte declarations.
    text = _XML_DECLARATION.sub("", text.lstrip("\ufeff"), count=1)
    try:
        root = ET.fromstring(text)
    except (ET.ParseError, ValueError) as exc:
        raise DocumentError(f"malformed XML: {exc}") from exc
    return _to_tree(root)


# ── Extraction ───────────────────────────────────────────────────────────────

def _walk(tree: Any, tag: str) -> List[Any]:
    found: List[Any] = []
    stack = [("visit", tree)]
    while stack:
        action, node = stack.pop()
        if action == "emit":
            found.append(node)
            continue

        steps = []
        if isinstance(node, list):
            steps = [("visit", item) for item in node]
        elif isinstance(node, dict):
            for key, value in node.items():
                if key != tag:
                    steps.append(("visit", value))
                elif isinstance(value, list):
                    steps.extend(("emit", v) for v in value)
                else:
                    steps.append(("emit", value))
        # Reversed so nodes come off the stack in document order.
        stack.extend(reversed(steps))
    return found


def extract_tenders(tree: Any, tag: Optional[str] = None) -> List[TenderRecord]:
    """Return every tender node in the tree, however deeply it is nested."""
    found = _walk(tree, tag or config.TENDER_TAG)
    return [t for t in found if t is not None]


# ── Normalisation ────────────────────────────────────────────────────────────

def _scalar(value: Any) -> Any:
    if isinstance(value, list):
        value = next((v for v in value if v is not None), None)
    if isinstance(value, dict):
        value = value.get("#text")
    return value


def lookup(record: Any, keys: Sequence[str]) -> str:
    """First present, non-null value among keys, as text; "" if none."""
    if not isinstance(record, dict):
        return ""
    for key in keys:
        value = _scalar(record.get(key))
        if value is not None:
            return str(value).strip()
    return ""


def _lookup_node(record: Any, keys: Iterable[str]) -> Any:
    if not isinstance(record, dict):
        return None
    for key in keys:
        value = record.get(key)
        if isinstance(value, list):
            value = next((v for v in value if v is not None), None)
        if value is not None:
            return value
    return None


def parse_price(text: Any) -> float:
    """
    Parse an award price such as "1,234,567" into a float.
    Empty or unparseable text gives 0.0.
    """
    if text is None:
        return 0.0
    cleaned = str(text).replace(",", "").strip()
    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        return 0.0
    try:
        return float(match.group(1))
    except ValueError:
        return 0.0


def bidder_name(record: Any) -> str:
    """Name of the (first) awarded bidder, or "" when the record has none."""
    bidders = _lookup_node(record, BIDDER_LIST_KEYS)
    return lookup(bidders, BIDDER_NAME_KEYS)


def normalize(record: TenderRecord, source_file: str = "") -> NormalizedRow:
    price = parse_price(lookup(record, PRICE_KEYS))
    million = round(price / 1_000_000, 6) if price else 0.0

    return NormalizedRow(
        source_file=source_file,
        tender_no=lookup(record, TENDER_NO_KEYS),
        tender_name=lookup(record, TENDER_NAME_KEYS),
        org_name=lookup(record, ORG_NAME_KEYS),
        bidder_name=bidder_name(record),
        award_date=lookup(record, AWARD_DATE_KEYS),
        award_price=price,
        award_price_million=million,
    )
