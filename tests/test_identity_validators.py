"""Normalization helpers and the identity fallback chains."""

from datetime import datetime, timedelta

import pytest

from onboarding_crm.services import identity
from onboarding_crm.shared.pagination import clamp_limit
from onboarding_crm.shared.validators import (
    last_10_digits,
    normalize_email,
    parse_int,
    parse_money,
    split_full_name,
    validate_email,
)


class TestValidators:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("+1 (555) 123-4567", "5551234567"),
            ("15551234567@s.whatsapp.net", "5551234567"),
            ("555-1234", "5551234"),
            ("", None),
            (None, None),
        ],
    )
    def test_last_10_digits(self, value, expected):
        assert last_10_digits(value) == expected

    def test_normalize_email(self):
        assert normalize_email("  Jane@Example.COM ") == "jane@example.com"
        assert normalize_email("   ") is None

    def test_validate_email(self):
        assert validate_email("A@B.io") == "a@b.io"
        with pytest.raises(ValueError):
            validate_email("nope")

    def test_split_full_name(self):
        assert split_full_name("Mary Ann Smith") == ("Mary", "Ann Smith")
        assert split_full_name("Cher") == ("Cher", "")
        assert split_full_name(None) == ("", "")

    def test_numbers(self):
        assert parse_int("8/10") == 8
        assert parse_int("high") is None
        assert parse_money("$5,000.50") == 5000.5
        assert parse_money("n/a") is None

    def test_clamp_limit(self):
        assert clamp_limit(None) == 50
        assert clamp_limit(0, default=20) == 20
        assert clamp_limit(9999) == 500


class TestIdentityChains:
    def test_newest_application_wins_on_email(self, db, make_application):
        make_application(email="jane@example.com", created_at=datetime.utcnow() - timedelta(days=5))
        newest = make_application(email="JANE@example.com")
        assert identity.find_application_by_email(db, "jane@EXAMPLE.com").id == newest.id

    def test_name_match_needs_both_halves(self, db, make_application):
        make_application(email="x@example.com")
        assert identity.find_application_for_invitee(db, None, "Jane") is None
        assert identity.find_application_for_invitee(db, "other@example.com", "JANE DOE") is not None

    def test_phone_falls_back_to_order_email(self, db, make_application, make_order):
        application = make_application(email="buyer@example.com", phone=None)
        make_order(samcart_order_id="o1", email="buyer@example.com", phone="(555) 222-3333")
        assert identity.find_application_for_phone(db, "15552223333").id == application.id

    def test_short_phone_fragments_do_not_link(self, db, make_member, make_application):
        member = make_member(email="solo@example.com", phone="1234", first_name=None, last_name=None)
        make_application(email="other@example.com", phone="555-000-1234")
        assert identity.find_linked_records(db, member)["typeform_application"] is None

    def test_linked_by_name(self, db, make_member, make_application):
        member = make_member(email="m@example.com", first_name="jane", last_name="DOE")
        application = make_application(email="a@example.com")
        assert identity.find_linked_records(db, member)["typeform_application"].id == application.id
