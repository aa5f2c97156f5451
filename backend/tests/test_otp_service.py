"""
Tests for the in-memory OTP store.

Tests: issue, verify (match / mismatch / expiry), single use, replacement.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import time

import pytest

from services.otp_service import OtpStore


class TestOtpStore:

    @pytest.mark.unit
    def test_issue_returns_six_digits(self):
        store = OtpStore()
        code = store.issue("+966500000001", "whatsapp")
        assert len(code) == 6
        assert code.isdigit()
        assert 100000 <= int(code) <= 999999

    @pytest.mark.unit
    def test_correct_code_verifies_once(self):
        """A code is consumed on success and cannot be reused."""
        store = OtpStore()
        code = store.issue("a@b.com", "email")
        assert store.verify("a@b.com", code) is True
        assert store.verify("a@b.com", code) is False
        assert len(store) == 0

    @pytest.mark.unit
    def test_wrong_code_keeps_record(self):
        """A mismatch leaves the record so the user can retry."""
        store = OtpStore()
        code = store.issue("a@b.com", "email")
        wrong = "000000" if code != "000000" else "111111"
        assert store.verify("a@b.com", wrong) is False
        assert store.peek("a@b.com") is not None
        assert store.verify("a@b.com", code) is True

    @pytest.mark.unit
    def test_expired_code_is_rejected_and_purged(self):
        store = OtpStore()
        code = store.issue("a@b.com", "email", ttl_seconds=0)
        assert store.verify("a@b.com", code) is False
        assert store.peek("a@b.com") is None

    @pytest.mark.unit
    def test_unknown_recipient(self):
        assert OtpStore().verify("nobody@x.com", "123456") is False

    @pytest.mark.unit
    def test_reissue_replaces_previous_code(self):
        store = OtpStore()
        first = store.issue("a@b.com", "email")
        second = store.issue("a@b.com", "email")
        assert len(store) == 1
        assert store.peek("a@b.com").code == second
        if first != second:
            assert store.verify("a@b.com", first) is False

    @pytest.mark.unit
    def test_code_whitespace_is_ignored(self):
        store = OtpStore()
        code = store.issue("a@b.com", "email")
        assert store.verify("a@b.com", f" {code} ") is True

    @pytest.mark.unit
    def test_expiry_uses_ttl(self):
        store = OtpStore()
        store.issue("a@b.com", "email", ttl_seconds=600)
        remaining = store.peek("a@b.com").expires_at - time.time()
        assert 590 < remaining <= 600

    @pytest.mark.unit
    def test_discard(self):
        store = OtpStore()
        store.issue("a@b.com", "email")
        store.discard("a@b.com")
        store.discard("a@b.com")
        assert store.peek("a@b.com") is None

    @pytest.mark.unit
    def test_issue_sweeps_expired_records(self):
        """Codes nobody verified do not pile up."""
        store = OtpStore()
        store.issue("+966500000001", "whatsapp", ttl_seconds=0)
        store.issue("old@bizchat.com", "email", ttl_seconds=0)
        store.issue("a@b.com", "email")
        assert len(store) == 1
        assert store.peek("+966500000001") is None
        assert store.peek("a@b.com") is not None
