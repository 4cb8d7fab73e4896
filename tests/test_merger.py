import itertools

from flag_migrator.models.migration import VariableMergePolicy
from flag_migrator.services.merger import RecordMerger

from conftest import make_audience, make_record


def variable_names(feature):
    return [v.name for v in feature.variables]


def test_one_entry_per_feature_name():
    records = [
        make_record("a", [{"name": "x", "type": "string"}]),
        make_record("b", [{"name": "y", "type": "string"}]),
        make_record("a", [{"name": "z", "type": "number"}]),
    ]

    merged = RecordMerger().merge(records)

    assert sorted(merged) == ["a", "b"]
    assert variable_names(merged["a"]) == ["x", "z"]


def test_grouping_is_case_sensitive():
    records = [
        make_record("Checkout", [{"name": "x"}]),
        make_record("checkout", [{"name": "y"}]),
    ]

    assert sorted(RecordMerger().merge(records)) == ["Checkout", "checkout"]


def test_records_without_variables_are_excluded():
    records = [
        make_record("empty", []),
        make_record("empty", []),
        make_record("kept", [{"name": "x"}]),
    ]

    merged = RecordMerger().merge(records)

    assert list(merged) == ["kept"]


def test_empty_record_does_not_block_later_record_with_variables():
    records = [
        make_record("flag", [], record_id="1"),
        make_record("flag", [{"name": "x"}], record_id="2"),
    ]

    merged = RecordMerger().merge(records)

    assert variable_names(merged["flag"]) == ["x"]
    assert merged["flag"].source_ids == ["2"]


def test_dedupe_policy_keeps_first_type():
    records = [
        make_record("flag", [{"name": "buttonColor", "type": "string"}]),
        make_record("flag", [{"name": "button-color", "type": "number"}, {"name": "size", "type": "number"}]),
    ]

    merged = RecordMerger(VariableMergePolicy.DEDUPE).merge(records)

    assert [(v.name, v.type) for v in merged["flag"].variables] == [
        ("buttonColor", "string"),
        ("size", "number"),
    ]


def test_append_policy_keeps_duplicates():
    records = [
        make_record("flag", [{"name": "x", "type": "string"}]),
        make_record("flag", [{"name": "x", "type": "boolean"}]),
    ]

    merged = RecordMerger(VariableMergePolicy.APPEND).merge(records)

    assert [v.type for v in merged["flag"].variables] == ["string", "boolean"]


def test_variable_membership_is_order_independent():
    records = [
        make_record("flag", [{"name": "a"}]),
        make_record("flag", [{"name": "b"}, {"name": "c"}]),
        make_record("other", [{"name": "d"}]),
        make_record("flag", [{"name": "a"}, {"name": "e"}]),
    ]

    expected = None
    for ordering in itertools.permutations(records):
        merged = RecordMerger().merge(ordering)
        membership = {name: set(variable_names(f)) for name, f in merged.items()}
        if expected is None:
            expected = membership
        assert membership == expected

    assert expected == {"flag": {"a", "b", "c", "e"}, "other": {"d"}}


def test_tags_come_from_first_record():
    records = [
        make_record("flag", [{"name": "x"}], tags=["first"]),
        make_record("flag", [{"name": "y"}], tags=["second"]),
    ]

    assert RecordMerger().merge(records)["flag"].tags == ["first"]


def test_targeting_taken_from_first_record_that_has_it():
    audience = make_audience({"subType": "platform", "comparator": "=", "values": ["iOS"]})
    records = [
        make_record("flag", [{"name": "x"}]),
        make_record("flag", [{"name": "y"}], audience=audience, distribution=[{"name": "Variation On", "percentage": 1}]),
    ]

    feature = RecordMerger().merge(records)["flag"]

    assert feature.has_targeting
    assert feature.audience.name == "Test audience"
    assert [d.name for d in feature.distribution] == ["Variation On"]


def test_variables_declared_in_variations_are_merged():
    records = [
        make_record("flag", variations=[
            {"name": "baseline", "variables": [{"name": "headline", "type": "string", "value": "A"}]},
            {"name": "treatment", "variables": [{"name": "headline", "type": "string", "value": "B"}]},
        ]),
        make_record("flag", variations=[
            {"name": "treatment", "variables": [{"name": "subtitle", "type": "string", "value": "C"}]},
            {"name": "extra", "variables": [{"name": "subtitle", "type": "string", "value": "D"}]},
        ]),
    ]

    feature = RecordMerger().merge(records)["flag"]

    assert variable_names(feature) == ["headline", "subtitle"]
    assert [v.name for v in feature.variations] == ["baseline", "treatment", "extra"]
