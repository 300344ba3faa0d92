"""Unit tests for uri kinds."""

from unifiles.kinds import AbsoluteUri, UriKind, is_primitive


class TestUriKind:
    """Tests for UriKind flags and AbsoluteUri."""

    def test_aliases(self):
        """Test composite kinds are unions of primitive kinds."""
        assert UriKind.ABSOLUTE == UriKind.LOCAL_ABSOLUTE | UriKind.ONLINE_ABSOLUTE
        assert UriKind.RELATIVE == UriKind.LOCAL_RELATIVE | UriKind.ONLINE_RELATIVE
        assert UriKind.LOCAL == UriKind.LOCAL_ABSOLUTE | UriKind.LOCAL_RELATIVE
        assert UriKind.ONLINE == UriKind.ONLINE_ABSOLUTE | UriKind.ONLINE_RELATIVE
        assert UriKind.ALL == UriKind.LOCAL | UriKind.ONLINE

    def test_is_primitive(self):
        """Test only single kinds are primitive."""
        for kind in (UriKind.LOCAL_ABSOLUTE, UriKind.LOCAL_RELATIVE,
                     UriKind.ONLINE_ABSOLUTE, UriKind.ONLINE_RELATIVE):
            assert is_primitive(kind)

        assert not is_primitive(UriKind.NONE)
        assert not is_primitive(UriKind.ABSOLUTE)
        assert not is_primitive(UriKind.LOCAL_ABSOLUTE | UriKind.ONLINE_RELATIVE)

    def test_absolute_uri_is_a_tuple(self):
        """Test AbsoluteUri unpacks and compares like a plain tuple."""
        result = AbsoluteUri("/tmp/file.txt", UriKind.LOCAL_ABSOLUTE)
        uri, kind = result

        assert uri == "/tmp/file.txt"
        assert kind == UriKind.LOCAL_ABSOLUTE
        assert result == ("/tmp/file.txt", UriKind.LOCAL_ABSOLUTE)
