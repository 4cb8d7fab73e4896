import pytest

from flag_migrator.models.record import MergedFeature
from flag_migrator.models.source import SourceVariable, SourceVariation
from flag_migrator.services.feature_builder import (
    FeatureBuilder,
    convert_variable_type,
    default_value,
)


def variables(*specs):
    return [SourceVariable(name=name, type=type_, value=value) for name, type_, value in specs]


@pytest.mark.parametrize("variable_type, state, expected", [
    ("string", False, ""),
    ("string", True, ""),
    ("number", False, 0),
    ("number", True, 1),
    ("boolean", False, False),
    ("Boolean", True, True),
    ("json", True, ""),
    ("unknown", False, ""),
])
def test_default_value(variable_type, state, expected):
    assert default_value(variable_type, state) == expected


@pytest.mark.parametrize("source_type, expected", [
    ("string", "String"),
    ("NUMBER", "Number"),
    ("boolean", "Boolean"),
    ("json", "JSON"),
    ("date", "String"),
    ("", "String"),
])
def test_convert_variable_type(source_type, expected):
    assert convert_variable_type(source_type) == expected


def test_generated_variations_cover_every_variable():
    feature = MergedFeature(
        feature_name="checkout_v2_flag",
        variables=variables(("buttonColor", "string", None), ("showBanner", "boolean", None)),
        tags=["checkout"],
    )

    payload = FeatureBuilder().build(feature)

    assert payload.key == "checkout_v2_flag"
    assert payload.type == "release"
    assert payload.tags == ["checkout"]
    assert [(v.key, v.type) for v in payload.variables] == [
        ("button-color", "String"),
        ("show-banner", "Boolean"),
    ]
    assert [v.variables for v in payload.variations] == [
        {"button-color": "", "show-banner": False},
        {"button-color": "", "show-banner": True},
    ]


def test_descriptions_name_the_source():
    feature = MergedFeature(feature_name="flag", variables=variables(("x", "string", None)))

    payload = FeatureBuilder(source_label="Taplytics").build(feature)

    assert payload.description == "Imported from Taplytics: flag"
    assert payload.variables[0].description == "Imported from Taplytics: x"


def test_variables_deduplicated_by_normalized_key():
    feature = MergedFeature(
        feature_name="flag",
        variables=variables(("buttonColor", "string", None), ("button-color", "number", None)),
    )

    payload = FeatureBuilder().build(feature)

    assert [(v.name, v.type) for v in payload.variables] == [("buttonColor", "String")]


def test_literal_value_used_for_on_variation():
    feature = MergedFeature(feature_name="flag", variables=variables(("maxItems", "number", 12)))

    payload = FeatureBuilder().build(feature)

    assert payload.get_variation("variation-off").variables == {"max-items": 0}
    assert payload.get_variation("variation-on").variables == {"max-items": 12}


def test_source_variations_fill_missing_values():
    feature = MergedFeature(
        feature_name="subscription.v2.text.overwrite",
        variables=variables(("headline", "string", None), ("showBadge", "boolean", None)),
        variations=[
            SourceVariation(name="baseline", variables=variables(("headline", "string", "Subscribe"))),
            SourceVariation(name="Treatment A", variables=variables(("headline", "string", "Join now"))),
        ],
    )

    payload = FeatureBuilder().build(feature)

    assert payload.key == "subscription_v2_text_overwrite"
    assert [(v.key, v.name) for v in payload.variations] == [
        ("baseline", "baseline"),
        ("treatment-a", "Treatment A"),
    ]
    assert payload.variations[0].variables == {"headline": "Subscribe", "show-badge": False}
    assert payload.variations[1].variables == {"headline": "Join now", "show-badge": True}


def test_payload_serialization():
    feature = MergedFeature(feature_name="flag", variables=variables(("x", "boolean", None)), tags=["t"])

    body = FeatureBuilder().build(feature).to_dict()

    assert body["sdkVisibility"] == {"mobile": True, "client": True, "server": True}
    assert body["variables"][0] == {
        "name": "x", "key": "x", "type": "Boolean", "description": "Imported from Taplytics: x",
    }
    assert body["variations"][1] == {"key": "variation-on", "name": "Variation On", "variables": {"x": True}}
    assert body["tags"] == ["t"]


def test_no_variables_yields_empty_payload():
    feature = MergedFeature(feature_name="flag", variables=variables(("!!!", "string", None)))

    payload = FeatureBuilder().build(feature)

    assert payload.variables == []
