from unittest.mock import AsyncMock, patch

import pytest

from app.core.config import settings
from app.models.user import BankDetails, Location


def test_get_profile_masks_account_number(client, login_as, make_user, farmer):
    login_as(farmer)
    stored = make_user(
        farmer,
        location=Location(latitude=21.14, longitude=79.08, city="Nagpur", state="Maharashtra"),
        bank_details=BankDetails(
            account_number="001122334455",
            ifsc_code="SBIN0001234",
            bank_name="State Bank of India",
            account_holder_name="Ravi Kumar",
        ),
    )

    with patch("app.routes.users.UserRepository.get_user_by_id", new_callable=AsyncMock, return_value=stored):
        response = client.get("/api/user/profile")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["location"]["city"] == "Nagpur"
    assert data["bankDetails"]["ifscCode"] == "SBIN0001234"
    assert "accountNumber" not in data["bankDetails"]
    assert "001122334455" not in response.text


def test_update_profile_duplicate_email(client, login_as, make_user, farmer, buyer):
    login_as(farmer)

    with patch(
        "app.routes.users.UserRepository.find_conflicting_user",
        new_callable=AsyncMock,
        return_value=make_user(buyer),
    ), patch("app.routes.users.UserRepository.update_user", new_callable=AsyncMock) as mock_update:
        response = client.put("/api/user/profile", json={"email": buyer.email})

    assert response.status_code == 409
    assert response.json()["message"] == "Email already in use."
    mock_update.assert_not_awaited()


def test_update_profile(client, login_as, make_user, farmer):
    login_as(farmer)

    with patch(
        "app.routes.users.UserRepository.find_conflicting_user", new_callable=AsyncMock, return_value=None
    ), patch("app.routes.users.UserRepository.update_user", new_callable=AsyncMock) as mock_update:
        mock_update.return_value = make_user(farmer, full_name="Ravi Patil")
        response = client.put("/api/user/profile", json={"fullName": "Ravi Patil"})

    assert response.status_code == 200
    assert response.json()["data"]["fullName"] == "Ravi Patil"
    mock_update.assert_awaited_once_with(farmer.id, {"full_name": "Ravi Patil"})


def test_update_location(client, login_as, make_user, farmer):
    login_as(farmer)

    with patch("app.routes.users.UserRepository.set_location", new_callable=AsyncMock) as mock_set:
        mock_set.return_value = make_user(farmer)
        response = client.put(
            "/api/user/location",
            json={"lat": 21.14, "lng": 79.08, "city": "Nagpur", "pincode": "440001"},
        )

    assert response.status_code == 200
    user_id, location = mock_set.await_args.args
    assert user_id == farmer.id
    assert location.latitude == 21.14
    assert location.pincode == "440001"


def test_update_bank_details_does_not_echo_account_number(client, login_as, make_user, farmer):
    login_as(farmer)

    with patch("app.routes.users.UserRepository.set_bank_details", new_callable=AsyncMock) as mock_set:
        mock_set.return_value = make_user(farmer)
        response = client.put(
            "/api/user/bank-details",
            json={
                "accountNo": "001122334455",
                "ifsc": "sbin0001234",
                "bankName": "State Bank of India",
                "accountHolderName": "Ravi Kumar",
            },
        )

    assert response.status_code == 200
    assert "001122334455" not in response.text
    bank_details = mock_set.await_args.args[1]
    assert bank_details.account_number == "001122334455"
    assert bank_details.ifsc_code == "SBIN0001234"
    assert bank_details.is_verified is False


def test_update_bank_details_blank_field(client, login_as, farmer):
    login_as(farmer)

    response = client.put(
        "/api/user/bank-details",
        json={"accountNo": " ", "ifsc": "SBIN0001234", "bankName": "SBI", "accountHolderName": "Ravi"},
    )

    assert response.status_code == 400


def test_delete_account(client, login_as, farmer):
    login_as(farmer)

    with patch(
        "app.routes.users.UserRepository.deactivate_user", new_callable=AsyncMock, return_value=True
    ) as mock_deactivate:
        response = client.delete("/api/user/account")

    assert response.status_code == 200
    assert response.json()["data"] is None
    mock_deactivate.assert_awaited_once_with(farmer.id)


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))
    return tmp_path


def test_upload_profile_picture(client, login_as, make_user, farmer, upload_dir):
    login_as(farmer)

    with patch("app.routes.users.UserRepository.update_user", new_callable=AsyncMock) as mock_update:
        mock_update.return_value = make_user(farmer)
        response = client.put(
            "/api/user/profile-picture",
            files={"image": ("me.jpg", b"\xff\xd8\xff", "image/jpeg")},
        )

    assert response.status_code == 200
    image_url = response.json()["data"]["imageUrl"]
    assert image_url.startswith("/uploads/")
    assert image_url.endswith(".jpg")
    mock_update.assert_awaited_once_with(farmer.id, {"profile_picture_url": image_url})
    assert (upload_dir / image_url.rsplit("/", 1)[1]).read_bytes() == b"\xff\xd8\xff"


def test_upload_profile_picture_requires_file(client, login_as, farmer, upload_dir):
    login_as(farmer)

    with patch("app.routes.users.UserRepository.update_user", new_callable=AsyncMock) as mock_update:
        response = client.put("/api/user/profile-picture")

    assert response.status_code == 400
    assert response.json()["message"] == "No file uploaded."
    mock_update.assert_not_awaited()


def test_upload_profile_picture_rejects_non_image(client, login_as, farmer, upload_dir):
    login_as(farmer)

    with patch("app.routes.users.UserRepository.update_user", new_callable=AsyncMock) as mock_update:
        response = client.put(
            "/api/user/profile-picture",
            files={"image": ("notes.pdf", b"%PDF", "application/pdf")},
        )

    assert response.status_code == 400
    mock_update.assert_not_awaited()
    assert list(upload_dir.iterdir()) == []


def test_upload_profile_picture_unknown_user_discards_file(client, login_as, farmer, upload_dir):
    login_as(farmer)

    with patch("app.routes.users.UserRepository.update_user", new_callable=AsyncMock, return_value=None):
        response = client.put(
            "/api/user/profile-picture",
            files={"image": ("me.png", b"\x89PNG", "image/png")},
        )

    assert response.status_code == 404
    assert list(upload_dir.iterdir()) == []
