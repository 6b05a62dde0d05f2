import pytest

from skyplan.errors import InvalidInput
from skyplan.util.format import deg_to_dms, format_angle, hours_to_hms, parse_sexagesimal


def test_hours_to_hms_zero():
    assert hours_to_hms(0.0) == "00h00m00.0s"


def test_hours_to_hms_wrap():
    assert hours_to_hms(24.0) == "00h00m00.0s"


def test_hours_to_hms_rounding_carry():
    # 23:59:59.96 rounds up past midnight
    assert hours_to_hms(24.0 - 0.04 / 3600.0) == "00h00m00.0s"


def test_hours_to_hms_value():
    assert hours_to_hms(5.5, precision=0) == "05h30m00s"


def test_deg_to_dms_positive():
    assert deg_to_dms(41.5) == "+41°30'00\""


def test_deg_to_dms_negative():
    assert deg_to_dms(-5.25) == "-05°15'00\""


def test_deg_to_dms_small_negative():
    assert deg_to_dms(-0.0001, precision=2).startswith("-00°00'")


@pytest.mark.parametrize(
    "text,expected",
    [
        ("5.5", 5.5),
        ("5:30:00", 5.5),
        ("5h30m", 5.5),
        ("-5d15m", -5.25),
        ("+41 30 00", 41.5),
        ("-0:30", -0.5),
    ],
)
def test_parse_sexagesimal(text, expected):
    assert parse_sexagesimal(text) == pytest.approx(expected)


def test_parse_sexagesimal_rejects_garbage():
    with pytest.raises(InvalidInput):
        parse_sexagesimal("north-ish")


def test_format_angle_styles():
    assert format_angle(180.0, style="deg", precision=1) == "180.0°"
    assert format_angle(0.5, style="arcmin", precision=0) == "30'"
    assert format_angle(82.5, style="hms", precision=0) == "05h30m00s"


def test_format_angle_unknown_style():
    with pytest.raises(ValueError, match="Unknown angle style"):
        format_angle(0.0, style="unknown")
