from pyaxeos.pyaxeos_base import parse_version

def test_parse_version_basic():
    assert parse_version('2.9.0') == 0 + 9*100 + 2*10000

def test_parse_version_missing_parts():
    # Should pad with .0
    v = parse_version('2.5')
    assert v == 5*100 + 2*10000

def test_parse_version_none():
    assert parse_version(None) is None

def test_parse_version_prefix_and_suffix():
    v = parse_version('v2.10.1-dirty')
    # 2.10.1 -> reversed [1,10,2] => 1 + 10*100 + 2*10000
    assert v == 1 + 10*100 + 2*10000

def test_parse_version_ordering():
    assert parse_version('v2.10.0') > parse_version('v2.9.3')
