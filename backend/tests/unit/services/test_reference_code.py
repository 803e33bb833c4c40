import logging

import pytest

from appointments.core.exceptions import ReferenceCodeExhaustedException
from appointments.services.reference_code import ALPHABET, ReferenceCodeAllocator, gen_code


class TestGenCode:
    def test_default_length_and_alphabet(self) -> None:
        code = gen_code()

        assert len(code) == 8
        assert set(code) <= set(ALPHABET)

    def test_alphabet_omits_ambiguous_characters(self) -> None:
        assert not set("01IOL") & set(ALPHABET)

    def test_rejects_non_positive_length(self) -> None:
        with pytest.raises(ValueError):
            gen_code(0)


class TestReferenceCodeAllocator:
    def test_returns_first_unused_candidate(self) -> None:
        candidates = iter(["AAAAAAAA", "BBBBBBBB", "CCCCCCCC"])
        taken = {"AAAAAAAA"}
        allocator = ReferenceCodeAllocator(
            length=8, max_attempts=5, generator=lambda _n: next(candidates)
        )

        assert allocator.allocate(lambda code: code in taken) == "BBBBBBBB"

    def test_exhaustion_raises_after_bounded_attempts(self, caplog) -> None:
        calls = []

        def generator(n: int) -> str:
            calls.append(n)
            return "SAMECODE"

        allocator = ReferenceCodeAllocator(length=8, max_attempts=3, generator=generator)

        with caplog.at_level(logging.ERROR):
            with pytest.raises(ReferenceCodeExhaustedException) as exc_info:
                allocator.allocate(lambda _code: True)

        assert len(calls) == 3
        assert exc_info.value.details == {"attempts": 3, "retryable": True}
        assert exc_info.value.status_code == 503
        assert "exhausted" in caplog.text

    def test_defaults_come_from_settings(self) -> None:
        allocator = ReferenceCodeAllocator()

        assert allocator.length == 8
        assert allocator.max_attempts == 5
