"""OFAC CSV parsing, entity extraction and alias/address consolidation.

Flow for one update run:

    rows = parse_csv(sdn_text)               # header-normalized dict rows
    entities = extract_entities(rows)        # one SanctionedEntity per valid SDN row
    entities = consolidate_aliases(entities, parse_csv(alt_text))
    entities = consolidate_addresses(entities, parse_csv(add_text))

Every field lookup goes through `first_defined` with a list of header variants,
so column renames between OFAC publications do not need code changes.

The consolidators never mutate their input. Each call returns a new list in
which matched entities are replaced by copies with longer `aka` / `addresses`.
They are meant to run once per fresh extraction: feeding already consolidated
output back in with the same rows appends the same values a second time.
"""

from __future__ import annotations

import csv
import io
import re
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace

from logging_utils import get_logger
from utils.ofac_entities import EntityAddress, SanctionedEntity

logger = get_logger(__name__)

Row = Mapping[str, "str | None"]

UID_KEYS: tuple[str, ...] = ("ent_num", "entnum", "uid", "id")
NAME_KEYS: tuple[str, ...] = ("sdn_name", "sdnname", "name", "full_name")
TYPE_KEYS: tuple[str, ...] = ("sdn_type", "sdntype", "type")
PROGRAM_KEYS: tuple[str, ...] = ("program", "programs", "sanctions_program")
REMARKS_KEYS: tuple[str, ...] = ("remarks", "comment", "comments")
ALT_NAME_KEYS: tuple[str, ...] = ("alt_name", "altname", "name", "alternate_name")
ADDRESS_KEYS: tuple[str, ...] = ("address", "addr", "street")
CITY_KEYS: tuple[str, ...] = ("city", "city_name")
COUNTRY_KEYS: tuple[str, ...] = ("country", "country_name")

# Column layouts of the legacy header-less SDN.CSV / ALT.CSV / ADD.CSV files.
# The fourth ADD column holds "City/State/Province/Postal Code"; it is mapped
# to `city` so the address join picks it up.
SDN_COLUMNS: tuple[str, ...] = (
    "ent_num",
    "SDN_Name",
    "SDN_Type",
    "Program",
    "Title",
    "Call_Sign",
    "Vess_type",
    "Tonnage",
    "GRT",
    "Vess_flag",
    "Vess_owner",
    "Remarks",
)
ALT_COLUMNS: tuple[str, ...] = ("ent_num", "alt_num", "alt_type", "alt_name", "alt_remarks")
ADD_COLUMNS: tuple[str, ...] = ("ent_num", "add_num", "Address", "City", "Country", "add_remarks")

# OFAC writes "-0-" into empty cells.
OFAC_NULL_MARKERS: frozenset[str] = frozenset({"-0-"})

_STRIP_CHARS_RE = re.compile(r"[^0-9A-Za-z_\s-]")
_SEPARATOR_RUN_RE = re.compile(r"[-\s]+")
_PROGRAM_SPLIT_RE = re.compile(r"[,;]+")

_SKIP_LOG_LIMIT = 5


def normalize_header(header: str) -> str:
    """Canonicalize a CSV column name.

    "Ent Num" -> "ent_num", "SDN-Type" -> "sdn_type", "Program(s)" -> "programs".
    """

    h = str(header).replace("\ufeff", "")
    h = h.strip().lower()
    h = _STRIP_CHARS_RE.sub("", h)
    return _SEPARATOR_RUN_RE.sub("_", h)


def first_defined(row: Row, keys: Iterable[str]) -> str | None:
    """Return the first value under `keys` that is present and not blank."""

    for k in keys:
        v = row.get(k)
        if v is not None and str(v).strip() != "":
            return str(v)
    return None


def _looks_headerless(first_record: Sequence[str]) -> bool:
    return bool(first_record) and first_record[0].strip().isdigit()


def parse_csv(
    csv_text: str,
    *,
    fieldnames: Sequence[str] | None = None,
    fallback_fieldnames: Sequence[str] | None = None,
    null_markers: Iterable[str] = OFAC_NULL_MARKERS,
) -> list[dict[str, str]]:
    """Parse CSV text into rows keyed by normalized header.

    - `fieldnames`: use these columns and treat every record as data.
    - `fallback_fieldnames`: used only when the first record looks like data
      (numeric first cell), i.e. the export has no header row.

    Blank lines are skipped, cells are trimmed, null markers become "".
    Short records simply lack the trailing keys; extra cells are dropped.

    Raises:
        csv.Error: if the text cannot be tokenized.
    """

    text = csv_text[1:] if csv_text.startswith("\ufeff") else csv_text
    markers = frozenset(null_markers)

    reader = csv.reader(io.StringIO(text, newline=""))
    records = [r for r in reader if any(cell.strip() for cell in r)]

    if fieldnames is not None:
        header = list(fieldnames)
        data = records
    elif records and fallback_fieldnames is not None and _looks_headerless(records[0]):
        logger.info(
            "CSV has no header row; using fixed layout | columns=%s",
            len(fallback_fieldnames),
        )
        header = list(fallback_fieldnames)
        data = records
    elif records:
        header = records[0]
        data = records[1:]
    else:
        header, data = [], []

    keys = [normalize_header(h) for h in header]

    rows: list[dict[str, str]] = []
    for record in data:
        row: dict[str, str] = {}
        for key, cell in zip(keys, record):
            value = cell.strip()
            row[key] = "" if value in markers else value
        rows.append(row)

    logger.info("CSV parsed | rows=%s", len(rows))
    if keys:
        logger.debug("CSV parsed | headers=%s", ", ".join(keys))
    return rows


def _split_programs(raw: str) -> tuple[str, ...]:
    return tuple(t.strip() for t in _PROGRAM_SPLIT_RE.split(raw) if t.strip())


def extract_entities(rows: Iterable[Row]) -> list[SanctionedEntity]:
    """Build one entity per SDN row that has both an identifier and a name.

    Rows missing either are skipped; that is a completeness gap in the source,
    not an error.
    """

    entities: list[SanctionedEntity] = []
    skipped = 0
    total = 0

    for idx, row in enumerate(rows):
        total += 1
        uid = first_defined(row, UID_KEYS)
        name = first_defined(row, NAME_KEYS)

        if uid is None or name is None:
            skipped += 1
            if skipped <= _SKIP_LOG_LIMIT:
                logger.debug(
                    "Skipped SDN row | index=%s uid=%s name=%s",
                    idx,
                    "found" if uid else "missing",
                    "found" if name else "missing",
                )
            continue

        entities.append(
            SanctionedEntity(
                uid=uid,
                name=name,
                type=first_defined(row, TYPE_KEYS),
                programs=_split_programs(first_defined(row, PROGRAM_KEYS) or ""),
                remarks=first_defined(row, REMARKS_KEYS),
            )
        )

    logger.info(
        "Entities extracted | entities=%s rows=%s skipped=%s",
        len(entities),
        total,
        skipped,
    )
    return entities


def _index_by_uid(entities: Sequence[SanctionedEntity]) -> dict[str, int]:
    # Duplicate uids in the primary table: the last row wins the join.
    return {e.uid: pos for pos, e in enumerate(entities)}


def consolidate_aliases(
    entities: Sequence[SanctionedEntity], alt_rows: Iterable[Row]
) -> list[SanctionedEntity]:
    """Append ALT-table alternate names to `aka`, joined on uid."""

    index = _index_by_uid(entities)
    pending: dict[int, list[str]] = defaultdict(list)
    merged = invalid = unmatched = 0

    for row in alt_rows:
        uid = first_defined(row, UID_KEYS)
        alt_name = first_defined(row, ALT_NAME_KEYS)
        if uid is None or alt_name is None:
            invalid += 1
            continue

        pos = index.get(uid)
        if pos is None:
            unmatched += 1
            continue

        pending[pos].append(alt_name)
        merged += 1

    out = list(entities)
    for pos, names in pending.items():
        out[pos] = replace(out[pos], aka=out[pos].aka + tuple(names))

    logger.info(
        "ALT consolidated | merged=%s invalid=%s unmatched=%s",
        merged,
        invalid,
        unmatched,
    )
    return out


def consolidate_addresses(
    entities: Sequence[SanctionedEntity], add_rows: Iterable[Row]
) -> list[SanctionedEntity]:
    """Append ADD-table address records to `addresses`, joined on uid."""

    index = _index_by_uid(entities)
    pending: dict[int, list[EntityAddress]] = defaultdict(list)
    merged = invalid = unmatched = empty = 0

    for row in add_rows:
        uid = first_defined(row, UID_KEYS)
        if uid is None:
            invalid += 1
            continue

        pos = index.get(uid)
        if pos is None:
            unmatched += 1
            continue

        address = first_defined(row, ADDRESS_KEYS)
        city = first_defined(row, CITY_KEYS)
        country = first_defined(row, COUNTRY_KEYS)
        if address is None and city is None and country is None:
            empty += 1
            continue

        pending[pos].append(EntityAddress(address=address, city=city, country=country))
        merged += 1

    out = list(entities)
    for pos, records in pending.items():
        out[pos] = replace(out[pos], addresses=out[pos].addresses + tuple(records))

    logger.info(
        "ADD consolidated | merged=%s invalid=%s unmatched=%s empty=%s",
        merged,
        invalid,
        unmatched,
        empty,
    )
    return out
