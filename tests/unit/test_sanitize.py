"""Tests for payload cloning and sanitization."""

import copy
import re
import uuid
from datetime import UTC, date, datetime, time, timedelta
from decimal import Decimal
from typing import Any

import pytest
import bson
from bson import Binary, Decimal128, ObjectId, Regex
from hypothesis import given
from hypothesis import strategies as st

from docsink.core.sanitize import (
    clone,
    encode_fallback,
    error_record,
    escape_key,
    sanitize,
)
from docsink.errors import SerializationError

pytestmark = [pytest.mark.core, pytest.mark.tier(1)]

_keys = st.text(alphabet=st.sampled_from("ab$._"), max_size=6) | st.text(max_size=5)
_scalars = (
    st.none()
    | st.booleans()
    | st.integers()
    | st.floats(allow_nan=False)
    | st.text(max_size=10)
)
payloads = st.recursive(
    _scalars,
    lambda children: st.lists(children, max_size=4)
    | st.dictionaries(_keys, children, max_size=4),
    max_leaves=20,
)


def _all_keys(value: Any) -> list[str]:
    if isinstance(value, dict):
        keys = list(value)
        for item in value.values():
            keys.extend(_all_keys(item))
        return keys
    if isinstance(value, list):
        return [key for item in value for key in _all_keys(item)]
    return []


class TestEscapeKey:
    """Tests for escape_key()."""

    def test_leading_dollar_replaced(self) -> None:
        assert escape_key("$set") == "_dollar_set"

    def test_only_leading_dollar_replaced(self) -> None:
        assert escape_key("$price$") == "_dollar_price$"

    def test_inner_dollar_kept(self) -> None:
        assert escape_key("us$d") == "us$d"

    def test_every_dot_replaced(self) -> None:
        assert escape_key("a.b.c") == "a_dot_b_dot_c"

    def test_dollar_and_dots(self) -> None:
        assert escape_key("$a.b") == "_dollar_a_dot_b"

    def test_non_string_key_converted(self) -> None:
        assert escape_key(1.5) == "1_dot_5"


class TestSanitize:
    """Tests for sanitize()."""

    @pytest.mark.parametrize(
        "value",
        [
            None,
            "text",
            42,
            3.5,
            True,
            b"raw",
            datetime(2024, 1, 1, tzinfo=UTC),
            re.compile("^a.b$"),
            Regex("^a"),
            ObjectId(),
            Binary(b"\x00\x01"),
        ],
    )
    def test_opaque_values_pass_through(self, value: Any) -> None:
        """Scalars and store-native types are returned unchanged."""
        assert sanitize(value) is value

    def test_functions_pass_through(self) -> None:
        assert sanitize(len) is len

    def test_nested_keys_escaped(self) -> None:
        payload = {"$where": {"a.b": [{"$in.x": 1}]}, "plain": "x.y"}

        result = sanitize(payload)

        assert result == {
            "_dollar_where": {"a_dot_b": [{"_dollar_in_dot_x": 1}]},
            "plain": "x.y",
        }

    def test_sequence_order_preserved(self) -> None:
        assert sanitize([3, {"a.b": 1}, "x"]) == [3, {"a_dot_b": 1}, "x"]

    def test_tuples_and_sets_become_lists(self) -> None:
        assert sanitize((1, 2)) == [1, 2]
        assert sanitize({"k": frozenset({7})}) == {"k": [7]}

    def test_input_not_mutated(self) -> None:
        payload = {"$a": {"b.c": [1, {"d.e": 2}]}}
        before = copy.deepcopy(payload)

        sanitize(payload)

        assert payload == before

    def test_returns_new_containers(self) -> None:
        inner = [1, 2]
        payload = {"k": inner}

        result = sanitize(payload)

        assert result is not payload
        assert result["k"] is not inner

    def test_error_becomes_record(self) -> None:
        assert sanitize(ValueError("bad input")) == {
            "name": "ValueError: bad input",
            "message": "bad input",
        }

    def test_error_without_message_defaults(self) -> None:
        record = error_record(RuntimeError())

        assert record == {"name": "RuntimeError", "message": "error"}

    def test_nested_error_sanitized(self) -> None:
        result = sanitize({"err": KeyError("x")})

        assert result["err"]["name"].startswith("KeyError")

    def test_cycle_raises_serialization_error(self) -> None:
        payload: dict[str, Any] = {}
        payload["self"] = payload

        with pytest.raises(SerializationError):
            sanitize(payload)

    def test_shared_reference_is_not_a_cycle(self) -> None:
        shared = {"a": 1}

        assert sanitize([shared, shared]) == [{"a": 1}, {"a": 1}]

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (date(2024, 5, 1), datetime(2024, 5, 1)),
            (time(12, 30, 5), "12:30:05"),
            (timedelta(minutes=1, seconds=3), 63.0),
            (Decimal("1.5"), Decimal128("1.5")),
            (bytearray(b"ab"), b"ab"),
            (2**70, str(2**70)),
        ],
    )
    def test_non_bson_leaves_converted(self, value: Any, expected: Any) -> None:
        assert sanitize(value) == expected

    def test_uuid_becomes_binary_uuid(self) -> None:
        value = uuid.uuid4()

        result = sanitize(value)

        assert isinstance(result, Binary)
        assert result.as_uuid() == value

    def test_unknown_object_becomes_string(self) -> None:
        class Point:
            def __str__(self) -> str:
                return "(1, 2)"

        assert sanitize({"p": Point()}) == {"p": "(1, 2)"}

    @pytest.mark.parametrize(
        "value",
        [
            Decimal("1.5"),
            Decimal("1" * 40),
            uuid.uuid4(),
            timedelta(seconds=3),
            date(2024, 5, 1),
            time(8, 0),
            bytearray(b"x"),
            2**64,
            object(),
            {"nested": [Decimal("2"), {"when": date(2024, 1, 1)}]},
        ],
    )
    def test_result_is_bson_encodable(self, value: Any) -> None:
        bson.encode({"data": sanitize({"v": value})})

    def test_converted_values_are_stable(self) -> None:
        once = sanitize([date(2024, 5, 1), Decimal("3.25"), uuid.uuid4()])

        assert sanitize(once) == once

    @given(payloads)
    def test_idempotent(self, value: Any) -> None:
        once = sanitize(value)

        assert sanitize(once) == once

    @given(payloads)
    def test_no_reserved_characters_in_keys(self, value: Any) -> None:
        for key in _all_keys(sanitize(value)):
            assert not key.startswith("$")
            assert "." not in key


class TestClone:
    """Tests for clone()."""

    def test_copy_is_independent(self) -> None:
        payload = {"user": {"tags": ["a"]}}

        copied = clone(payload)
        payload["user"]["tags"].append("b")

        assert copied == {"user": {"tags": ["a"]}}

    def test_leaf_values_shared(self) -> None:
        error = ValueError("x")

        assert clone([error])[0] is error

    def test_bytearray_copied(self) -> None:
        raw = bytearray(b"ab")

        copied = clone({"raw": raw})
        raw.extend(b"cd")

        assert copied == {"raw": b"ab"}

    def test_tuple_stays_tuple(self) -> None:
        assert clone(("a", [1])) == ("a", [1])

    def test_cycle_through_list_raises(self) -> None:
        items: list[Any] = []
        items.append(items)

        with pytest.raises(SerializationError, match="cycle"):
            clone(items)


class TestEncodeFallback:
    """Tests for encode_fallback()."""

    def test_callable_stored_as_null(self) -> None:
        assert encode_fallback(len) is None

    def test_other_values_converted(self) -> None:
        assert encode_fallback(timedelta(seconds=2)) == 2.0
