from datetime import datetime, timedelta, timezone

import pytest

from errors import CredentialError, ForbiddenError
from proofs import LocationProofs


def test_hash_verifies_original_password(hasher, password_hash):
    assert password_hash.startswith("$2b$04$")
    assert hasher.verify("12345", password_hash)
    assert not hasher.verify("54321", password_hash)


def test_default_cost_factor_is_ten():
    from credentials import BcryptHasher
    assert BcryptHasher().rounds == 10


def test_malformed_digest_is_a_credential_error(hasher):
    with pytest.raises(CredentialError):
        hasher.verify("12345", "not-a-bcrypt-digest")


def test_proof_accepted_for_same_class_and_student(proofs):
    token = proofs.issue("CS101", "101")
    proofs.check(token, "CS101", "101")


def test_proof_without_student_binds_class_only(proofs):
    token = proofs.issue("CS101")
    proofs.check(token, "CS101", "102")


@pytest.mark.parametrize("code, student", [("MA102", "101"), ("CS101", "102")])
def test_proof_rejected_on_mismatch(proofs, code, student):
    token = proofs.issue("CS101", "101")
    with pytest.raises(ForbiddenError):
        proofs.check(token, code, student)


def test_expired_proof_rejected():
    past = datetime.now(timezone.utc) - timedelta(hours=1)
    issuer = LocationProofs("test-secret", ttl_seconds=60, clock=lambda: past)
    token = issuer.issue("CS101", "101")
    with pytest.raises(ForbiddenError, match="expired"):
        issuer.check(token, "CS101", "101")


def test_missing_or_forged_proof_rejected(proofs):
    with pytest.raises(ForbiddenError):
        proofs.check(None, "CS101", "101")
    forged = LocationProofs("other-secret").issue("CS101", "101")
    with pytest.raises(ForbiddenError, match="Invalid"):
        proofs.check(forged, "CS101", "101")
