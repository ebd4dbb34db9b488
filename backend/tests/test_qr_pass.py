import jwt
import pytest

from crowdstack.services.qr_pass import QRPassError, generate_qr_pass_token, verify_qr_pass_token


def test_round_trip():
    token = generate_qr_pass_token(11, 22, 33)
    qr = verify_qr_pass_token(token)
    assert (qr.registration_id, qr.event_id, qr.attendee_id) == (11, 22, 33)


def test_wrong_secret_is_rejected():
    token = generate_qr_pass_token(1, 2, 3, secret="another-secret")
    with pytest.raises(QRPassError):
        verify_qr_pass_token(token)


def test_wrong_type_is_rejected():
    token = jwt.encode(
        {"registration_id": 1, "event_id": 2, "attendee_id": 3, "typ": "access"},
        "test-qr-secret",
        algorithm="HS256",
    )
    with pytest.raises(QRPassError):
        verify_qr_pass_token(token)


def test_missing_claims_are_rejected():
    token = jwt.encode({"registration_id": 1, "typ": "qr_pass"}, "test-qr-secret", algorithm="HS256")
    with pytest.raises(QRPassError):
        verify_qr_pass_token(token)


def test_garbage_is_rejected():
    with pytest.raises(QRPassError):
        verify_qr_pass_token("not-a-token")
    with pytest.raises(QRPassError):
        verify_qr_pass_token("")
