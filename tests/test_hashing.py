"""Tests for identifier hashing."""

import hashlib
import re

import pytest

from relay8x8.infra.hashing import redact, redact_if

from .helpers import TEST_CHANNEL_ID, TEST_MSISDN


class TestRedact:
    def test_default_is_sha256_hex(self):
        result = redact(TEST_MSISDN)

        assert re.fullmatch(r"[0-9a-f]{64}", result)
        assert result == hashlib.sha256(TEST_MSISDN.encode()).hexdigest()

    def test_is_deterministic(self):
        assert redact(TEST_MSISDN) == redact(TEST_MSISDN)

    def test_different_inputs_differ(self):
        assert redact(TEST_MSISDN) != redact(TEST_CHANNEL_ID)

    def test_does_not_contain_input(self):
        assert TEST_MSISDN.lstrip("+") not in redact(TEST_MSISDN)

    def test_configurable_algorithm(self):
        result = redact(TEST_MSISDN, "sha512")

        assert len(result) == 128
        assert result == hashlib.sha512(TEST_MSISDN.encode()).hexdigest()

    def test_unknown_algorithm_raises(self):
        with pytest.raises(ValueError):
            redact(TEST_MSISDN, "not-a-hash")


class TestRedactIf:
    def test_enabled_hashes(self):
        assert redact_if(True, TEST_MSISDN) == redact(TEST_MSISDN)

    def test_disabled_passes_through(self):
        assert redact_if(False, TEST_MSISDN) == TEST_MSISDN
