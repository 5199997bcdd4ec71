from reports.formatting import format_amount, format_usd, percentage


def test_format_amount():
    assert format_amount(10**18) == "1"
    assert format_amount(1_500_000_000_000_000_000) == "1.5"
    assert format_amount(1) == "0.000000000000000001"
    assert format_amount("0") == "0"
    assert format_amount(-25, decimals=1) == "-2.5"


def test_format_usd():
    assert format_usd(1000 * 10**18, "0.02") == "$20.00"
    assert format_usd(1_234_567 * 10**18, "0.02") == "$24,691.34"
    assert format_usd(-(10**18), "1") == "-$1.00"


def test_percentage():
    assert percentage(1, 4) == 25.0
    assert percentage(5, 0) == 0.0
