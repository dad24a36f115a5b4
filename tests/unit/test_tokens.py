"""Tests for token counters (tiktoken is replaced by a fake encoding)."""
from __future__ import annotations

import pytest
import tiktoken

from stratum.core.tokens import CharRatioCounter, TiktokenCounter, TokenCounter, make_token_counter


def test_char_ratio_counter_rounds_up() -> None:
    counter = CharRatioCounter(chars_per_token=4)
    assert counter.count("") == 0
    assert counter.count("a") == 1
    assert counter.count("abcd") == 1
    assert counter.count("abcde") == 2


def test_char_ratio_counter_rejects_non_positive_ratio() -> None:
    with pytest.raises(ValueError):
        CharRatioCounter(chars_per_token=0)


def test_counters_satisfy_the_protocol() -> None:
    assert isinstance(CharRatioCounter(), TokenCounter)
    assert isinstance(TiktokenCounter(), TokenCounter)


def test_make_token_counter_selects_from_config() -> None:
    chars = make_token_counter({"tokens": {"counter": "chars", "chars_per_token": 2}})
    assert isinstance(chars, CharRatioCounter)
    assert chars.count("abcd") == 2

    tik = make_token_counter({"tokens": {"counter": "tiktoken", "encoding": "o200k_base"}})
    assert isinstance(tik, TiktokenCounter)
    assert tik.encoding_name == "o200k_base"


def test_make_token_counter_defaults_to_tiktoken() -> None:
    assert isinstance(make_token_counter({}), TiktokenCounter)


def test_make_token_counter_rejects_unknown_kind() -> None:
    with pytest.raises(ValueError, match="Unknown token counter"):
        make_token_counter({"tokens": {"counter": "words"}})


class _FakeEncoding:
    def __init__(self) -> None:
        self.calls = []

    def encode(self, text, *, disallowed_special="all"):
        self.calls.append((text, disallowed_special))
        return text.split()


def test_tiktoken_counter_counts_with_the_named_encoding(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = _FakeEncoding()
    loaded = []

    def get_encoding(name):
        loaded.append(name)
        return fake

    monkeypatch.setattr(tiktoken, "get_encoding", get_encoding)
    counter = TiktokenCounter(encoding="o200k_base")

    assert counter.count("") == 0
    assert loaded == []
    assert counter.count("use <|endoftext|> literally") == 3
    assert counter.count("one two") == 2
    assert loaded == ["o200k_base"]
    assert fake.calls[0] == ("use <|endoftext|> literally", ())
