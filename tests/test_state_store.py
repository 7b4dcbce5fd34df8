"""Tests for ScopedStateStore keys, item/section scoping and observers."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from src.infra.errors import StateKeyError
from src.state.store import GlobalElementId, ScopedStateStore


@pytest.fixture()
def store() -> ScopedStateStore:
    return ScopedStateStore()


class TestKeys:
    def test_key_format(self, store) -> None:
        assert store.get_global_element_id("a1", "s1", "q5", "mc1") == "a1:s1:q5:mc1"

    def test_keys_differ_per_item(self, store) -> None:
        k5 = store.get_global_element_id("a1", "s1", "q5", "mc1")
        k6 = store.get_global_element_id("a1", "s1", "q6", "mc1")
        assert k5 != k6

    @pytest.mark.parametrize("segments", [("", "s", "i", "e"), ("a", "s", "", "e"), ("a", "s", "i", "")])
    def test_empty_segment_rejected(self, store, segments) -> None:
        with pytest.raises(StateKeyError):
            store.get_global_element_id(*segments)

    def test_delimiter_in_segment_rejected(self, store) -> None:
        # "a:b" + "c" would otherwise collide with "a" + "b:c"
        with pytest.raises(StateKeyError, match="must not contain"):
            store.get_global_element_id("a", "s:1", "i", "e")

    def test_item_cannot_impersonate_section_scope(self, store) -> None:
        with pytest.raises(StateKeyError, match="section scope marker"):
            store.get_global_element_id("a", "s", "__section__", "e")

    def test_section_key_is_independent_of_item(self, store) -> None:
        key = store.get_section_scope_key("a1", "s1")
        assert key == "a1:s1:__section__:__section__"
        assert store.parse_global_element_id(key).is_section_scope is True

    def test_parse(self, store) -> None:
        parsed = store.parse_global_element_id("a1:s1:q5:mc1")
        assert parsed == GlobalElementId("a1", "s1", "q5", "mc1")
        assert parsed.is_section_scope is False
        assert store.parse_global_element_id("a1:s1:q5") is None
        assert store.parse_global_element_id("a1::q5:mc1") is None

    def test_custom_marker_round_trips(self) -> None:
        store = ScopedStateStore(section_scope_marker="floating")
        key = store.get_section_scope_key("a1", "s1")
        assert key == "a1:s1:floating:floating"
        assert store.parse_global_element_id(key).is_section_scope is True
        assert store.parse_global_element_id("a1:s1:__section__:__section__").is_section_scope is False

    def test_error_code(self, store) -> None:
        with pytest.raises(StateKeyError) as exc_info:
            store.get_section_scope_key("", "s")
        assert exc_info.value.code == "INVALID_STATE_KEY"


class TestItemScopedState:
    def test_state_survives_navigation_and_is_isolated(self, store) -> None:
        key5 = store.get_global_element_id("a1", "s1", "item-5", "mc1")
        key6 = store.get_global_element_id("a1", "s1", "item-6", "mc1")
        store.set_state(key5, "answerEliminator", {"eliminated": ["b", "d"]})
        store.set_state(key6, "answerEliminator", {"eliminated": ["a"]})

        # navigate away and back: same composition, same key
        back = store.get_global_element_id("a1", "s1", "item-5", "mc1")
        assert store.get_state(back, "answerEliminator") == {"eliminated": ["b", "d"]}
        assert store.get_state(key6, "answerEliminator") == {"eliminated": ["a"]}

    def test_miss_returns_none(self, store) -> None:
        assert store.get_state("a:s:i:e", "highlighter") is None

    def test_stored_payload_is_a_copy(self, store) -> None:
        payload = {"eliminated": ["b"]}
        store.set_state("a:s:i:e", "answerEliminator", payload)
        payload["eliminated"].append("c")
        assert store.get_state("a:s:i:e", "answerEliminator") == {"eliminated": ["b"]}

    def test_element_state(self, store) -> None:
        store.set_state("a:s:i:e", "highlighter", {"ranges": [[0, 4]]})
        store.set_state("a:s:i:e", "answerEliminator", {"eliminated": []})
        assert set(store.get_element_state("a:s:i:e")) == {"highlighter", "answerEliminator"}


class TestClearing:
    def test_clear_tool_across_keys(self, store) -> None:
        store.set_state("a:s:i1:e", "highlighter", 1)
        store.set_state("a:s:i2:e", "highlighter", 2)
        store.set_state("a:s:i2:e", "answerEliminator", 3)
        store.clear_tool("highlighter")
        assert store.get_all_state() == {"a:s:i2:e": {"answerEliminator": 3}}

    def test_clear_section_keeps_other_sections(self, store) -> None:
        floating = store.get_section_scope_key("a", "s1")
        store.set_state(floating, "calculator", {"display": "42"})
        store.set_state("a:s1:i1:e", "highlighter", 1)
        store.set_state("a:s2:i1:e", "highlighter", 2)

        store.clear_section("a", "s1")
        assert store.get_all_state() == {"a:s2:i1:e": {"highlighter": 2}}

    def test_clear_element_and_all(self, store) -> None:
        store.set_state("a:s:i:e", "highlighter", 1)
        store.set_state("a:s:i:f", "highlighter", 2)
        store.clear_element("a:s:i:e")
        assert store.get_state("a:s:i:e", "highlighter") is None
        store.clear_all()
        assert store.get_all_state() == {}

    def test_load_state_replaces(self, store) -> None:
        store.set_state("a:s:i:e", "highlighter", 1)
        store.load_state({"a:s:i:f": {"calculator": {"display": "0"}}, "a:s:i:g": {}})
        assert store.get_all_state() == {"a:s:i:f": {"calculator": {"display": "0"}}}


class TestObservers:
    def test_subscribe_receives_changes(self, store) -> None:
        listener = MagicMock()
        unsubscribe = store.subscribe(listener)
        store.set_state("a:s:i:e", "highlighter", {"n": 1})
        store.clear_element("a:s:i:e")
        unsubscribe()
        store.set_state("a:s:i:e", "highlighter", {"n": 2})

        assert listener.call_args_list[0].args == ("a:s:i:e", "highlighter", {"n": 1})
        assert listener.call_args_list[1].args == ("a:s:i:e", "highlighter", None)
        assert listener.call_count == 2

    def test_persistence_callback_gets_snapshot(self, store) -> None:
        persist = MagicMock()
        store.set_on_state_change(persist)
        store.set_state("a:s:i:e", "highlighter", {"n": 1})
        persist.assert_called_once_with({"a:s:i:e": {"highlighter": {"n": 1}}})

    def test_failing_listener_is_contained(self, store) -> None:
        store.subscribe(MagicMock(side_effect=ValueError("boom")))
        store.set_state("a:s:i:e", "highlighter", 1)
        assert store.get_state("a:s:i:e", "highlighter") == 1
