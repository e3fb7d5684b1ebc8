# rx_core/prescriptions/tests/test_identifiers.py
import re

import pytest

from rx_core.common.errors import DomainError, ErrorCode
from rx_core.prescriptions.identifiers import IdentifierGenerator, to_base36

NUMBER_RE = re.compile(r"^RX-[0-9A-Z]+-[0-9A-Z]{5}$")


def test_to_base36():
    assert to_base36(0) == "0"
    assert to_base36(35) == "Z"
    assert to_base36(36) == "10"
    assert to_base36(1700000000000) == "LOYW3V28"


def test_generated_number_shape():
    gen = IdentifierGenerator(in_use=lambda n: False)
    number = gen.generate()
    assert NUMBER_RE.match(number), number
    assert number == number.upper()


def test_retries_on_collision_then_succeeds():
    seen = []

    def in_use(number):
        seen.append(number)
        return len(seen) < 3

    suffixes = iter(["AAAAA", "BBBBB", "CCCCC"])
    gen = IdentifierGenerator(clock_ms=lambda: 36, suffix=lambda: next(suffixes), in_use=in_use)

    assert gen.generate() == "RX-10-CCCCC"
    assert len(seen) == 3


def test_exhaustion_raises_after_bounded_attempts():
    calls = []

    def always_taken(number):
        calls.append(number)
        return True

    gen = IdentifierGenerator(in_use=always_taken)
    with pytest.raises(DomainError) as ei:
        gen.generate()

    assert ei.value.code == ErrorCode.IDENTIFIER_GENERATION_EXHAUSTED
    assert ei.value.http_status == 503
    assert len(calls) == 10


@pytest.mark.django_db
def test_default_uniqueness_check_hits_live_records_only():
    gen = IdentifierGenerator()
    assert NUMBER_RE.match(gen.generate())
