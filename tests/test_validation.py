# tests/test_validation.py
import pytest

from wedding_signup.signup.errors import InvalidFieldError, MissingFieldsError
from wedding_signup.signup.validation import password_errors, validate_signup

from conftest import signup_form


def test_valid_form_is_normalized():
    signup = validate_signup(signup_form(email=" alice@example.com ", slug="Alice-Bob", partner1_name=" Alice "))
    assert signup.email == "alice@example.com"
    assert signup.slug == "alice-bob"
    assert signup.partner1_name == "Alice"
    assert signup.couple_names == "Alice & Bob"
    assert signup.password.get_secret_value() == "Secret123"


def test_blank_wedding_date_becomes_none():
    assert validate_signup(signup_form(wedding_date="  ")).wedding_date is None


@pytest.mark.parametrize("missing", ["email", "password", "partner1_name", "partner2_name", "slug", "theme_id"])
def test_missing_required_field(missing):
    with pytest.raises(MissingFieldsError) as exc_info:
        validate_signup(signup_form(**{missing: None}))
    assert exc_info.value.status_code == 400
    assert exc_info.value.to_payload()["error"] == "Missing required fields"


def test_whitespace_only_counts_as_missing():
    with pytest.raises(MissingFieldsError):
        validate_signup(signup_form(partner2_name="   "))


@pytest.mark.parametrize("email", ["alice", "alice@", "alice@example", "al ice@example.com"])
def test_invalid_email(email):
    with pytest.raises(InvalidFieldError) as exc_info:
        validate_signup(signup_form(email=email))
    assert exc_info.value.field == "email"


@pytest.mark.parametrize("password", ["Short1", "alllowercase1", "ALLUPPERCASE1", "NoDigitsHere"])
def test_weak_password(password):
    with pytest.raises(InvalidFieldError) as exc_info:
        validate_signup(signup_form(password=password))
    assert exc_info.value.field == "password"
    assert exc_info.value.error == "Weak password"


def test_password_errors_lists_every_missing_rule():
    assert password_errors("abc") == ["at least 8 characters", "an uppercase letter", "a number"]
    assert password_errors("Secret123") == []


def test_unknown_theme():
    with pytest.raises(InvalidFieldError) as exc_info:
        validate_signup(signup_form(theme_id="neon"))
    assert exc_info.value.field == "theme_id"


def test_invalid_slug_format():
    with pytest.raises(InvalidFieldError) as exc_info:
        validate_signup(signup_form(slug="a-b"))
    assert exc_info.value.error == "Invalid slug format"


def test_reserved_slug_is_rejected_by_validation():
    with pytest.raises(InvalidFieldError) as exc_info:
        validate_signup(signup_form(slug="admin"))
    assert exc_info.value.error == "Reserved slug"
    assert exc_info.value.status_code == 400


def test_checks_run_in_order():
    # Bad email and bad password together: the email is reported
    with pytest.raises(InvalidFieldError) as exc_info:
        validate_signup(signup_form(email="nope", password="weak", slug="a-b"))
    assert exc_info.value.field == "email"
