"""Tests for sentinel.output_filter: PII and secret redaction."""

from __future__ import annotations

import pytest

from sentinel.output_filter import (
    FilterConfig,
    OutputFilter,
    RedactionRecord,
    mask_card,
    mask_email,
)
from sentinel.rules import RedactRule


# -----------------------------------------------------------------------
# Absent / clean input
# -----------------------------------------------------------------------


class TestPassthrough:

    @pytest.mark.parametrize("value", [None, "", 7])
    def test_absent_input(self, output_filter: OutputFilter, value):
        result = output_filter.filter_output(value)
        assert result.original is value
        assert result.output is value
        assert result.changed is False
        assert result.redactions == []

    def test_clean_text(self, output_filter: OutputFilter):
        text = "The weather is nice today."
        result = output_filter.filter_output(text)
        assert result.output == text
        assert result.changed is False


# -----------------------------------------------------------------------
# PII
# -----------------------------------------------------------------------


class TestPII:

    def test_ssn(self, output_filter: OutputFilter):
        result = output_filter.filter_output("Your SSN is 123-45-6789")
        assert result.output == "Your SSN is XXX-XX-XXXX"
        assert result.changed is True
        assert result.redactions == [RedactionRecord(type="pii", name="SSN", count=1)]

    def test_nine_digit_token_treated_as_ssn(self, output_filter: OutputFilter):
        result = output_filter.filter_output("Order 123456789 shipped")
        assert result.output == "Order XXX-XX-XXXX shipped"
        assert result.redactions[0].name == "SSN"

    @pytest.mark.parametrize(
        "card, expected",
        [
            ("4532-1234-5678-9010", "**** **** **** 9010"),
            ("4111 1111 1111 1111", "**** **** **** 1111"),
            ("4111111111111111", "**** **** **** 1111"),
            ("4222222222222", "**** **** **** 2222"),
        ],
    )
    def test_credit_card_keeps_last_four(self, output_filter: OutputFilter, card, expected):
        result = output_filter.filter_output(f"Card: {card}")
        assert result.output == f"Card: {expected}"
        assert result.redactions == [
            RedactionRecord(type="pii", name="Credit Card", count=1)
        ]

    def test_email_keeps_first_char_and_domain(self, output_filter: OutputFilter):
        result = output_filter.filter_output("Contact john.doe@example.com")
        assert "j***@example.com" in result.output
        assert "john.doe" not in result.output
        assert result.redactions == [RedactionRecord(type="pii", name="Email", count=1)]

    @pytest.mark.parametrize(
        "phone",
        ["(555) 123-4567", "555-123-4567", "555.123.4567", "+1 555 123 4567"],
    )
    def test_phone(self, output_filter: OutputFilter, phone: str):
        result = output_filter.filter_output(f"Call {phone} today")
        assert result.output == "Call (XXX) XXX-XXXX today"
        assert result.redactions == [RedactionRecord(type="pii", name="Phone", count=1)]

    def test_counts_multiple_matches(self, output_filter: OutputFilter):
        result = output_filter.filter_output("a@x.io and b@y.org")
        assert result.output == "a***@x.io and b***@y.org"
        assert result.redactions == [RedactionRecord(type="pii", name="Email", count=2)]


# -----------------------------------------------------------------------
# Secrets
# -----------------------------------------------------------------------


class TestSecrets:

    @pytest.mark.parametrize(
        "text",
        ["password: hunter22", "PASSWORD=hunter22", "pwd 'hunter22'", "passwd:hunter22"],
    )
    def test_password_redacted(self, output_filter: OutputFilter, text: str):
        result = output_filter.filter_output(text)
        assert result.output == "password: [REDACTED]"
        assert result.redactions == [
            RedactionRecord(type="secret", name="Password", count=1)
        ]

    def test_short_value_ignored(self, output_filter: OutputFilter):
        result = output_filter.filter_output("password: abc")
        assert result.changed is False


# -----------------------------------------------------------------------
# Ordering, toggles, idempotence
# -----------------------------------------------------------------------


class TestOrdering:

    def test_pii_before_secrets_in_fixed_order(
        self, output_filter: OutputFilter, sample_llm_output: str
    ):
        result = output_filter.filter_output(sample_llm_output)
        assert [(r.type, r.name) for r in result.redactions] == [
            ("pii", "SSN"),
            ("pii", "Credit Card"),
            ("pii", "Email"),
            ("pii", "Phone"),
            ("secret", "Password"),
        ]
        assert "j***@example.com" in result.output
        assert "XXX-XX-XXXX" in result.output
        assert "(XXX) XXX-XXXX" in result.output
        assert "**** **** **** 9010" in result.output
        assert "password: [REDACTED]" in result.output
        assert "hunter2!" not in result.output

    def test_refiltering_is_a_noop(self, output_filter: OutputFilter, sample_llm_output: str):
        first = output_filter.filter_output(sample_llm_output)
        second = output_filter.filter_output(first.output)
        assert second.changed is False
        assert second.output == first.output


class TestToggles:

    def test_pii_disabled(self, sample_llm_output: str):
        output_filter = OutputFilter(FilterConfig(redact_pii=False))
        result = output_filter.filter_output(sample_llm_output)
        assert "john.doe@example.com" in result.output
        assert [r.name for r in result.redactions] == ["Password"]

    def test_secrets_disabled(self):
        output_filter = OutputFilter(FilterConfig(redact_secrets=False))
        result = output_filter.filter_output("password: hunter22")
        assert result.changed is False

    def test_everything_disabled(self, sample_llm_output: str):
        output_filter = OutputFilter(FilterConfig(redact_pii=False, redact_secrets=False))
        assert output_filter.rules == ()
        result = output_filter.filter_output(sample_llm_output)
        assert result.output == sample_llm_output

    def test_non_bool_flag_rejected(self):
        with pytest.raises(ValueError):
            FilterConfig(redact_pii="yes")


# -----------------------------------------------------------------------
# Fail-open and counters
# -----------------------------------------------------------------------


class TestFailOpen:

    def test_faulty_replacement_returns_original(self):
        def explode(_text: str) -> str:
            raise ValueError("bad mask")

        output_filter = OutputFilter(
            pii_rules=[RedactRule("Boom", r"\d+", replacement=explode)]
        )
        result = output_filter.filter_output("id 42")
        assert result.output == "id 42"
        assert result.changed is False
        assert result.degraded is True
        assert result.redactions == []

        stats = output_filter.get_stats()
        assert stats.processed == 1
        assert stats.transformed == 0


class TestStats:

    def test_counters(self, output_filter: OutputFilter):
        output_filter.filter_output("nothing here")
        output_filter.filter_output("SSN 123-45-6789")
        output_filter.filter_output(None)
        stats = output_filter.get_stats()
        assert stats.processed == 3
        assert stats.transformed == 1


class TestMasks:

    def test_mask_card_ignores_separators(self):
        assert mask_card("4111-1111-1111-1") == "**** **** **** 1111"

    def test_mask_email(self):
        assert mask_email("alice@example.com") == "a***@example.com"
