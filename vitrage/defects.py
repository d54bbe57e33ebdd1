"""
Defect Tracking Module.

Inspection records for the segments of saved vitrages: when a segment was
inspected, by whom, and which defects from the catalogue were found. Records
are keyed by (vitrage name, segment id); only visible segments can be inspected.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

import pandas as pd

from vitrage.enums import InspectionStatus
from vitrage.errors import CellHidden, UnknownDefectType
from vitrage.models import Grid

logger = logging.getLogger(__name__)

DEFAULT_DEFECT_TYPES = [
    'Scratches',
    'Chips',
    'Cracks',
    'Contamination',
    'Deformation',
    'Seal failure',
    'Fogging',
    'Poor installation',
]

RecordKey = Tuple[str, int]


@dataclass
class InspectionRecord:
    vitrage_id: str
    cell_id: int
    inspection_date: date = field(default_factory=date.today)
    inspector: str = ''
    site_manager: str = ''
    defects: List[str] = field(default_factory=list)
    notes: str = ''

    @property
    def key(self) -> RecordKey:
        return self.vitrage_id, self.cell_id

    @property
    def has_defects(self) -> bool:
        return bool(self.defects)


@dataclass(frozen=True)
class InspectionSummary:
    segments: int
    inspected: int
    defective: int
    total_defects: int

    @property
    def status(self) -> InspectionStatus:
        if self.defective:
            return InspectionStatus.DEFECTIVE
        if self.inspected == 0:
            return InspectionStatus.NOT_INSPECTED
        if self.inspected < self.segments:
            return InspectionStatus.IN_PROGRESS
        return InspectionStatus.INSPECTED


class DefectRegistry:
    """The defect catalogue and every inspection record of a project."""

    def __init__(self, defect_types: Optional[Iterable[str]] = None, records: Optional[Iterable[InspectionRecord]] = None):
        self._defect_types: List[str] = list(DEFAULT_DEFECT_TYPES if defect_types is None else defect_types)
        self._records: Dict[RecordKey, InspectionRecord] = {}
        for record in records or []:
            for defect in record.defects:
                if defect not in self._defect_types:
                    self._defect_types.append(defect)
            self._records[record.key] = record

    # --- Catalogue ---

    @property
    def defect_types(self) -> List[str]:
        return list(self._defect_types)

    def add_defect_type(self, name: str) -> bool:
        """Adds a defect to the catalogue. Returns False for blanks and duplicates."""
        name = (name or '').strip()
        if not name or name in self._defect_types:
            return False
        self._defect_types.append(name)
        logger.info("Added defect type '%s'", name)
        return True

    # --- Records ---

    def record_inspection(
        self,
        vitrage_id: str,
        grid: Grid,
        cell_id: int,
        inspection_date: Optional[date] = None,
        inspector: str = '',
        site_manager: str = '',
        defects: Iterable[str] = (),
        notes: str = '',
    ) -> InspectionRecord:
        """Creates or replaces the record of one segment. Nothing is stored if validation fails."""
        cell = grid.cell(cell_id)
        if cell.hidden:
            raise CellHidden(f"Segment {cell_id} is merged into {cell.merged_into}; inspect the merged segment instead.")
        defects = list(dict.fromkeys(defects))
        unknown = [d for d in defects if d not in self._defect_types]
        if unknown:
            raise UnknownDefectType(f"Unknown defect type(s): {', '.join(unknown)}. Add them to the catalogue first.")

        record = InspectionRecord(
            vitrage_id=vitrage_id,
            cell_id=cell_id,
            inspection_date=inspection_date or date.today(),
            inspector=inspector.strip(),
            site_manager=site_manager.strip(),
            defects=defects,
            notes=notes.strip(),
        )
        self._records[record.key] = record
        logger.info("Inspection of %s segment %s: %d defect(s)", vitrage_id, cell_id, len(defects))
        return record

    def get(self, vitrage_id: str, cell_id: int) -> Optional[InspectionRecord]:
        return self._records.get((vitrage_id, cell_id))

    def draft(self, vitrage_id: str, cell_id: int) -> InspectionRecord:
        """The stored record, or an unsaved blank one dated today for the form."""
        return self.get(vitrage_id, cell_id) or InspectionRecord(vitrage_id, cell_id)

    def remove(self, vitrage_id: str, cell_id: int) -> bool:
        return self._records.pop((vitrage_id, cell_id), None) is not None

    def records_for(self, vitrage_id: str) -> List[InspectionRecord]:
        return sorted((r for r in self._records.values() if r.vitrage_id == vitrage_id), key=lambda r: r.cell_id)

    def drop_vitrage(self, vitrage_id: str) -> int:
        keys = [key for key in self._records if key[0] == vitrage_id]
        for key in keys:
            del self._records[key]
        return len(keys)

    def defective_ids(self, vitrage_id: str, grid: Grid) -> List[int]:
        return [r.cell_id for r in self.records_for(vitrage_id)
                if r.has_defects and r.cell_id in grid and not grid.cell(r.cell_id).hidden]

    def summary(self, vitrage_id: str, grid: Grid) -> InspectionSummary:
        """Counts over the visible segments; records of merged-away segments are ignored."""
        visible = {cell.cell_id for cell in grid.visible_cells()}
        records = [r for r in self.records_for(vitrage_id) if r.cell_id in visible]
        return InspectionSummary(
            segments=len(visible),
            inspected=len(records),
            defective=sum(1 for r in records if r.has_defects),
            total_defects=sum(len(r.defects) for r in records),
        )

    def defect_counts(self, vitrage_id: Optional[str] = None) -> pd.DataFrame:
        """Occurrences of each defect type, most frequent first."""
        records = self._records.values() if vitrage_id is None else self.records_for(vitrage_id)
        found = pd.Series([d for r in records for d in r.defects], dtype=object)
        if found.empty:
            return pd.DataFrame(columns=['Defect', 'Count'])
        counts = found.value_counts().rename_axis('Defect').reset_index(name='Count')
        return counts

    def __iter__(self) -> Iterator[InspectionRecord]:
        return iter(sorted(self._records.values(), key=lambda r: r.key))

    def __len__(self):
        return len(self._records)
