import copy

import pytest

from eventbadges.errors import BarcodeEncodingError, InvalidBadgeRequest
from eventbadges.export import compositor
from eventbadges.export.compositor import (
    BadgeGenerationRequest,
    BarcodeImage,
    Rectangle,
    TextRun,
    compose,
    get_field_value,
)
from eventbadges.models.badge_layout import (
    BadgeLayoutConfig,
    BadgeShapeElement,
    BadgeTextElement,
    Position,
    Size,
)


# Distinguishes "no values argument" from an explicit values=None
_EMPTY = object()


def make_request(layout=None, values=_EMPTY, **overrides):
    kwargs = dict(
        record_id="abc",
        name="Ada Lovelace",
        role="Participant",
        barcode="121700000000",
        values={} if values is _EMPTY else values,
        layout=layout,
    )
    kwargs.update(overrides)
    return BadgeGenerationRequest(**kwargs)


def test_combined_fields_are_joined(name_layout):
    request = make_request(name_layout, {"firstName": "Ada", "lastName": "Lovelace"})
    [run] = compose(request).text_runs
    assert run.value == "Ada Lovelace"
    assert (run.x, run.y, run.font_size, run.font_weight, run.align) == (52.5, 40, 14, "bold", "center")


def test_element_with_no_values_is_omitted(name_layout):
    draw_list = compose(make_request(name_layout, {"company": "ACME"}))
    assert draw_list.text_runs == []


def test_combined_fields_skip_empty_parts():
    request = make_request(values={"firstName": "", "lastName": "Lovelace"})
    assert get_field_value("firstName, lastName", request) == "Lovelace"


def test_name_and_role_fallbacks():
    request = make_request(values={"title": ""})
    assert get_field_value("name", request) == "Ada Lovelace"
    assert get_field_value("displayName", request) == "Ada Lovelace"
    assert get_field_value("role", request) == "Participant"
    assert get_field_value("title", request) == ""
    # Without a value map the combined binding falls back to the name
    assert get_field_value("firstName,lastName", make_request(values=None)) == "Ada Lovelace"


def test_non_string_values_are_stringified():
    request = make_request(values={"table": 7, "vip": True})
    assert get_field_value("table", request) == "7"
    assert get_field_value("vip", request) == "Yes"


def test_text_runs_keep_declared_order():
    layout = BadgeLayoutConfig(textElements=[
        BadgeTextElement("a", "company", position=Position(10, 10)),
        BadgeTextElement("b", "missing", position=Position(10, 20)),
        BadgeTextElement("c", "role", position=Position(10, 10)),
    ])
    runs = compose(make_request(layout, {"company": "ACME"})).text_runs
    assert [r.value for r in runs] == ["ACME", "Participant"]


def test_paint_order_and_border(name_layout):
    name_layout.showBorder = True
    items = compose(make_request(name_layout, {"firstName": "Ada"})).items
    assert [type(i) for i in items] == [Rectangle, Rectangle, TextRun, BarcodeImage]
    background, border = items[0], items[1]
    assert (background.width, background.height, background.fill_color) == (105, 148, "#ffffff")
    assert (border.x, border.y, border.width, border.height) == (5, 5, 95, 138)
    assert border.fill_color is None


def test_static_shapes_paint_under_text(name_layout):
    name_layout.shapes = [BadgeShapeElement("band", Position(0, 0), Size(105, 20), fillColor="#1e88e5")]
    items = compose(make_request(name_layout, {"firstName": "Ada"})).items
    band = items[1]
    assert isinstance(band, Rectangle)
    assert band.fill_color == "#1e88e5"
    assert band.stroke_color is None


def test_barcode_element(name_layout):
    [barcode] = compose(make_request(name_layout)).barcodes
    assert barcode.code == "121700000000"
    assert (barcode.x, barcode.y, barcode.width, barcode.height) == (20, 100, 65, 25)
    assert barcode.show_text is True
    assert barcode.png.startswith(b"\x89PNG")


def test_fallback_layout_when_request_has_none(name_layout):
    name_layout.paperSize = "A4"
    draw_list = compose(make_request(None), fallback_layout=name_layout)
    assert (draw_list.page_width, draw_list.page_height) == (210, 297)


def test_default_layout_when_nothing_given():
    draw_list = compose(make_request(None, {"firstName": "Ada", "lastName": "L"}))
    assert (draw_list.page_width, draw_list.page_height) == (105, 148)
    assert [r.value for r in draw_list.text_runs] == ["Ada L"]


def test_compose_is_idempotent_and_pure(name_layout):
    values = {"firstName": "Ada", "lastName": "Lovelace"}
    request = make_request(name_layout, values)
    snapshot = copy.deepcopy(request)
    assert compose(request) == compose(request)
    assert request == snapshot


@pytest.mark.parametrize("field", ["record_id", "name", "barcode"])
def test_missing_identity_aborts_before_drawing(field, monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("barcode rendered for an invalid request")

    monkeypatch.setattr(compositor, "render_code128_png", fail)
    with pytest.raises(InvalidBadgeRequest):
        compose(make_request(**{field: ""}))


def test_unencodable_barcode_raises(name_layout):
    with pytest.raises(BarcodeEncodingError):
        compose(make_request(name_layout, barcode="Ümlaut"))
