from pkgscout.services.formatting import format_bytes, format_ms


def test_format_bytes_outputs() -> None:
    assert format_bytes(0) == "0 B"
    assert format_bytes(1) == "1 B"
    assert format_bytes(1023) == "1023 B"
    assert format_bytes(1024) == "1.0 KB"
    assert format_bytes(1536) == "1.5 KB"
    assert format_bytes(1024 * 1024) == "1.0 MB"


def test_format_ms() -> None:
    assert format_ms(None) == "-"
    assert format_ms(12.3456) == "12.35 ms"
