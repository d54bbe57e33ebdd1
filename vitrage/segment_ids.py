"""
Segment Identification Module.

Site identifiers for the segments of placed vitrages. An identifier has eight
parts, from the construction object down to the section of the vitrage, and is
written as one dash-joined string with 'X' standing in for missing parts.
"""
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Iterable, List, Mapping

# Order of the parts in the full identifier.
ID_FIELDS = (
    'object', 'corpus', 'section', 'floor', 'apartment',
    'vitrage_number', 'vitrage_name', 'vitrage_section',
)

ID_FIELD_LABELS = {
    'object': 'Object',
    'corpus': 'Building',
    'section': 'Section',
    'floor': 'Floor',
    'apartment': 'Apartment',
    'vitrage_number': 'Vitrage No.',
    'vitrage_name': 'Vitrage Name',
    'vitrage_section': 'Vitrage Section',
}

MISSING_PART = 'X'
SEPARATOR = '-'


@dataclass
class SegmentID:
    object: str = ''
    corpus: str = ''
    section: str = ''
    floor: str = ''
    apartment: str = ''
    vitrage_number: str = ''
    vitrage_name: str = ''
    vitrage_section: str = ''

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            setattr(self, f.name, '' if value is None else str(value).strip())

    @property
    def parts(self) -> List[str]:
        return [getattr(self, name) for name in ID_FIELDS]

    @property
    def full_id(self) -> str:
        """e.g. 'ZIL18-1-2-5-X-12-V-03-A'."""
        return SEPARATOR.join(part or MISSING_PART for part in self.parts)

    @property
    def is_complete(self) -> bool:
        return all(self.parts)

    @property
    def is_empty(self) -> bool:
        return not any(self.parts)

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SegmentID":
        return cls(**{name: data.get(name, '') for name in ID_FIELDS})


def collect_id_options(mappings: Iterable[Mapping[Any, SegmentID]]) -> Dict[str, List[str]]:
    """
    Distinct values already used for each part, sorted. The editor offers them
    as suggestions so identifiers stay consistent across a building.
    """
    options: Dict[str, set] = {name: set() for name in ID_FIELDS}
    for mapping in mappings:
        for segment_id in mapping.values():
            for name in ID_FIELDS:
                value = getattr(segment_id, name)
                if value:
                    options[name].add(value)
    return {name: sorted(values) for name, values in options.items()}
