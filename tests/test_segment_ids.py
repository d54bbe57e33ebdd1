from vitrage.segment_ids import ID_FIELD_LABELS, ID_FIELDS, SegmentID, collect_id_options


def test_full_id_fills_missing_parts():
    segment_id = SegmentID(object="ZIL18", corpus="1", floor="5", vitrage_name="V-03")
    assert segment_id.full_id == "ZIL18-1-X-5-X-X-V-03-X"
    assert not segment_id.is_complete
    assert not segment_id.is_empty


def test_complete_identifier():
    segment_id = SegmentID("ZIL18", "1", "2", "5", "12", "4", "V-03", "A")
    assert segment_id.full_id == "ZIL18-1-2-5-12-4-V-03-A"
    assert segment_id.is_complete
    assert segment_id.parts == ["ZIL18", "1", "2", "5", "12", "4", "V-03", "A"]


def test_values_are_stripped_and_stringified():
    segment_id = SegmentID(object="  ZIL18 ", floor=5, apartment=None)
    assert segment_id.object == "ZIL18"
    assert segment_id.floor == "5"
    assert segment_id.apartment == ""
    assert SegmentID(corpus="   ").is_empty
    assert SegmentID().full_id == "X-X-X-X-X-X-X-X"


def test_dict_form():
    segment_id = SegmentID(object="ZIL18", vitrage_section="B")
    data = segment_id.to_dict()
    assert list(data) == list(ID_FIELDS)
    assert SegmentID.from_dict(data) == segment_id
    # Unknown keys are ignored and missing ones are blank.
    assert SegmentID.from_dict({'corpus': '2', 'color': 'red'}) == SegmentID(corpus="2")


def test_every_part_has_a_label():
    assert set(ID_FIELD_LABELS) == set(ID_FIELDS)


def test_collect_id_options():
    first = {1: SegmentID(object="ZIL18", floor="5"), 2: SegmentID(object="ZIL18", floor="12")}
    second = {7: SegmentID(object="Tower", apartment="3")}
    options = collect_id_options([first, second, {}])
    assert options['object'] == ["Tower", "ZIL18"]
    assert options['floor'] == ["12", "5"]
    assert options['apartment'] == ["3"]
    assert options['vitrage_section'] == []
    assert list(options) == list(ID_FIELDS)
