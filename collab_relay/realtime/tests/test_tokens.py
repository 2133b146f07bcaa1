import base64
import json

import pytest
from django.core.exceptions import ImproperlyConfigured

from collab_relay.realtime.tests.factories import TEST_SECRET
from collab_relay.realtime.tests.factories import encode_claims
from collab_relay.realtime.tests.factories import make_token
from collab_relay.realtime.tokens import Identity
from collab_relay.realtime.tokens import InvalidPayloadError
from collab_relay.realtime.tokens import InvalidSignatureError
from collab_relay.realtime.tokens import MalformedTokenError
from collab_relay.realtime.tokens import MissingSlugError
from collab_relay.realtime.tokens import TokenExpiredError
from collab_relay.realtime.tokens import TokenVerificationError
from collab_relay.realtime.tokens import TokenVerifier
from collab_relay.realtime.tokens import UnauthenticatedError
from collab_relay.realtime.tokens import sign_payload

NOW = 1_700_000_000


@pytest.fixture
def verifier():
    return TokenVerifier(TEST_SECRET, now_provider=lambda: NOW)


def _signed(encoded: str) -> str:
    return f"{encoded}.{sign_payload(encoded, TEST_SECRET)}"


class TestTokenVerifier:
    def test_valid_token_returns_identity_and_slug(self, verifier):
        token = make_token(slug="room-a", user_id=42, display_name="Ada", exp=NOW + 60)

        verified = verifier.verify(token)

        assert verified.slug == "room-a"
        assert verified.identity == Identity(user_id=42, display_name="Ada")

    def test_display_name_defaults_to_user_id(self, verifier):
        verified = verifier.verify(make_token(user_id="abc"))
        assert verified.identity.display_name == "abc"

        verified = verifier.verify(make_token(user_id=7, display_name=""))
        assert verified.identity.display_name == "7"

    def test_any_single_character_signature_change_is_rejected(self, verifier):
        token = make_token(exp=NOW + 60)
        encoded, signature = token.split(".")
        for i, char in enumerate(signature):
            replacement = "0" if char != "0" else "1"
            mutated = signature[:i] + replacement + signature[i + 1 :]
            with pytest.raises(InvalidSignatureError):
                verifier.verify(f"{encoded}.{mutated}")

    def test_uppercased_signature_is_rejected(self, verifier):
        encoded, signature = make_token().split(".")
        if signature.upper() == signature:
            pytest.skip("signature has no hex letters")
        with pytest.raises(InvalidSignatureError):
            verifier.verify(f"{encoded}.{signature.upper()}")

    def test_token_signed_with_other_secret_is_rejected(self, verifier):
        with pytest.raises(InvalidSignatureError):
            verifier.verify(make_token(secret="someone-else"))  # noqa: S106

    def test_expired_token(self, verifier):
        with pytest.raises(TokenExpiredError):
            verifier.verify(make_token(exp=NOW - 1))

    def test_exp_equal_to_now_is_still_valid(self, verifier):
        assert verifier.verify(make_token(exp=NOW)).slug == "room-a"

    def test_missing_exp_never_expires(self):
        far_future = TokenVerifier(TEST_SECRET, now_provider=lambda: 10**12)
        assert far_future.verify(make_token()).identity.user_id == 1

    def test_non_numeric_exp_is_invalid_payload(self, verifier):
        with pytest.raises(InvalidPayloadError):
            verifier.verify(make_token(exp="tomorrow"))

    @pytest.mark.parametrize(
        "token",
        ["", "no-separator", "a.b.c", ".signature", "payload.", "."],
    )
    def test_malformed_tokens(self, verifier, token):
        with pytest.raises(MalformedTokenError):
            verifier.verify(token)

    def test_non_string_token_is_malformed(self, verifier):
        with pytest.raises(MalformedTokenError):
            verifier.verify(None)

    def test_payload_that_is_not_json(self, verifier):
        encoded = base64.b64encode(b"not json").decode("ascii")
        with pytest.raises(InvalidPayloadError):
            verifier.verify(_signed(encoded))

    def test_payload_that_is_not_base64(self, verifier):
        with pytest.raises(InvalidPayloadError):
            verifier.verify(_signed("!!!!"))

    def test_payload_that_is_not_an_object(self, verifier):
        encoded = base64.b64encode(json.dumps(["room-a", 1]).encode()).decode()
        with pytest.raises(InvalidPayloadError):
            verifier.verify(_signed(encoded))

    def test_standard_padded_base64_is_accepted(self, verifier):
        raw = json.dumps({"slug": "room-b", "user_id": 9}).encode()
        encoded = base64.b64encode(raw).decode("ascii")
        assert verifier.verify(_signed(encoded)).slug == "room-b"

    @pytest.mark.parametrize("slug", [None, 12, ""])
    def test_missing_or_invalid_slug(self, verifier, slug):
        claims = {"user_id": 1}
        if slug is not None:
            claims["slug"] = slug
        with pytest.raises(MissingSlugError):
            verifier.verify(_signed(encode_claims(claims)))

    def test_missing_slug_is_reported_before_expiry(self, verifier):
        encoded = encode_claims({"user_id": 1, "exp": NOW - 10})
        with pytest.raises(MissingSlugError):
            verifier.verify(_signed(encoded))

    @pytest.mark.parametrize("user_id", [None, ""])
    def test_missing_user_is_unauthenticated(self, verifier, user_id):
        with pytest.raises(UnauthenticatedError):
            verifier.verify(make_token(user_id=user_id))

    @pytest.mark.parametrize("user_id", [{"id": 1}, [1], True, False])
    def test_user_id_of_wrong_type_is_invalid_payload(self, verifier, user_id):
        with pytest.raises(InvalidPayloadError):
            verifier.verify(make_token(user_id=user_id))

    def test_fractional_user_id_is_accepted(self, verifier):
        identity = verifier.verify(make_token(user_id=1.5)).identity

        assert identity.user_id == 1.5  # noqa: PLR2004
        assert identity.display_name == "1.5"

    def test_errors_carry_code_and_message(self, verifier):
        with pytest.raises(TokenVerificationError) as excinfo:
            verifier.verify(make_token(exp=NOW - 1))
        assert excinfo.value.code == "token_expired"
        assert excinfo.value.message == "Token expired"

    def test_empty_secret_is_a_configuration_error(self):
        with pytest.raises(ImproperlyConfigured):
            TokenVerifier("")
