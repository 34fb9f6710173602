from rasyon.domain.formatting import format_currency, format_number, format_percent


def test_currency_uses_turkish_grouping():
    text = format_currency(1234.56)
    assert "1.234,56" in text
    assert "₺" in text


def test_non_numbers_format_as_zero():
    assert format_currency(None) == "0,00 ₺"
    assert format_currency(float("nan")) == "0,00 ₺"
    assert format_number("abc") == "0"


def test_number_and_percent():
    assert format_number(1234.5) == "1.234,5"
    assert format_percent(12.345) == "%12.3"
