"""Unit tests for form and query-string encoding."""

from fetch_helper.encoding import encode_component, json_to_form, json_to_query_string


class TestJsonToQueryString:
    """Tests for json_to_query_string."""

    def test_mixed_values(self) -> None:
        """Test arrays explode, zero is kept and empty values are dropped."""
        result = json_to_query_string(
            {
                "x": 1,
                "y": None,
                "t": "",
                "u": [1, 2, 3],
                "v": 0,
                "m": "somenormalstring",
                "n": "http://localhost:8000",
                "o": [1, "a b"],
            }
        )

        assert result == (
            "x=1&u=1&u=2&u=3&v=0&m=somenormalstring"
            "&n=http%3A%2F%2Flocalhost%3A8000&o=1&o=a%20b"
        )

    def test_false_is_dropped(self) -> None:
        """Test that False is omitted while True is kept."""
        assert json_to_query_string({"a": False, "b": True}) == "b=true"

    def test_float_zero_is_kept(self) -> None:
        """Test that 0.0 counts as exactly zero."""
        assert json_to_query_string({"z": 0.0}) == "z=0.0"

    def test_empty_list_emits_nothing(self) -> None:
        """Test that an empty list contributes no pairs."""
        assert json_to_query_string({"a": [], "b": "c"}) == "b=c"

    def test_tuple_explodes_like_list(self) -> None:
        """Test that tuples are treated as arrays."""
        assert json_to_query_string({"id": (3, 4)}) == "id=3&id=4"

    def test_empty_and_none_input(self) -> None:
        """Test that missing input yields an empty string."""
        assert json_to_query_string({}) == ""
        assert json_to_query_string(None) == ""

    def test_preserves_key_order(self) -> None:
        """Test that pairs follow input key order."""
        assert json_to_query_string({"b": 2, "a": 1, "c": 3}) == "b=2&a=1&c=3"


class TestJsonToForm:
    """Tests for json_to_form."""

    def test_simple_pairs(self) -> None:
        """Test a basic form body."""
        assert json_to_form({"x": 1, "y": 2}) == "x=1&y=2"

    def test_keeps_falsy_values(self) -> None:
        """Test that falsy values are still emitted."""
        result = json_to_form({"a": "", "b": 0, "c": None, "d": False})

        assert result == "a=&b=0&c=null&d=false"

    def test_encodes_keys_and_values(self) -> None:
        """Test that both keys and values are percent-encoded."""
        result = json_to_form({"full name": "Jane Doe", "next": "/a?b=c&d"})

        assert result == "full%20name=Jane%20Doe&next=%2Fa%3Fb%3Dc%26d"

    def test_empty_input(self) -> None:
        """Test that no fields produce an empty body."""
        assert json_to_form() == ""


class TestEncodeComponent:
    """Tests for URI component encoding."""

    def test_unreserved_characters_untouched(self) -> None:
        """Test that the unreserved set passes through."""
        assert encode_component("AZaz09-_.!~*'()") == "AZaz09-_.!~*'()"

    def test_reserved_characters_escaped(self) -> None:
        """Test that reserved characters are escaped."""
        assert encode_component(":/?#[]@&=+$,;") == "%3A%2F%3F%23%5B%5D%40%26%3D%2B%24%2C%3B"

    def test_unicode_is_utf8_encoded(self) -> None:
        """Test that non-ASCII text is UTF-8 percent-encoded."""
        assert encode_component("é") == "%C3%A9"
