# tests/test_pets_routes.py
import json
import uuid

import pytest

from conftest import add_pet

PET_FIELDS = {
    "name": "Nemo",
    "species": "Fish",
    "breed": "Clownfish",
    "age": "5 months",
    "price": 1200,
    "description": "Bright orange and healthy",
}


def seed(client, **fields):
    pet = add_pet(**fields)
    client.app.state.inventory.refresh()
    return pet


@pytest.fixture
def three_pets(client):
    return [
        seed(client, price=10, breed="Guppy"),
        seed(client, price=50, breed="Betta", featured=True),
        seed(client, price=30, breed="Guppy", is_visible=False),
    ]


def prices(response):
    return [item["price"] for item in response.json()["items"]]


# -------- storefront --------


def test_hidden_pets_only_for_admins(client, three_pets, admin_headers, user_headers):
    assert sorted(prices(client.get("/api/pets"))) == [10, 50]
    assert sorted(prices(client.get("/api/pets", headers=user_headers))) == [10, 50]
    assert sorted(prices(client.get("/api/pets", headers=admin_headers))) == [10, 30, 50]


def test_price_range_and_sort(client, three_pets, admin_headers):
    r = client.get("/api/pets?min_price=20&max_price=40", headers=admin_headers)
    assert prices(r) == [30]

    r = client.get("/api/pets?sort=price-asc", headers=admin_headers)
    assert prices(r) == [10, 30, 50]


def test_species_and_breed_selection(client, three_pets):
    seed(client, species="Cat", breed="Persian", price=300)

    assert prices(client.get("/api/pets?species=Cat")) == [300]
    assert sorted(prices(client.get("/api/pets?breeds=Guppy&breeds=Persian"))) == [10, 300]
    assert prices(client.get("/api/pets?species=Dog")) == []


def test_categories(client, three_pets):
    body = client.get("/api/pets/categories").json()
    assert body["categories"] == {"Fish": ["Betta", "Guppy"]}
    assert body["max_price"] == 100


def test_featured(client, three_pets):
    assert prices(client.get("/api/pets/featured")) == [50]


def test_detail_hides_hidden_pets_from_guests(client, three_pets, admin_headers):
    hidden = three_pets[2]
    assert client.get(f"/api/pets/{hidden.id}").status_code == 404
    assert client.get(f"/api/pets/{hidden.id}", headers=admin_headers).status_code == 200

    r = client.get(f"/api/pets/{uuid.uuid4()}")
    assert r.status_code == 404
    assert r.json()["detail"] == "Pet not found"


def test_share_and_qr(client):
    pet = seed(client)

    share = client.get(f"/api/pets/{pet.id}/share").json()
    assert share["url"] == f"http://shop.test/pets/{pet.id}"
    assert share["whatsapp_url"].startswith("https://wa.me/94771234567?text=")
    assert share["summary"] == "A healthy goldfish"

    qr = client.get(f"/api/pets/{pet.id}/qr.png")
    assert qr.status_code == 200
    assert qr.headers["content-type"] == "image/png"
    assert f"pet-{pet.id}-qr.png" in qr.headers["content-disposition"]
    assert qr.content.startswith(b"\x89PNG")


# -------- admin writes --------


def test_create_pet_with_media(client, admin_headers, uploader):
    r = client.post(
        "/api/pets",
        data={
            "data": json.dumps(PET_FIELDS),
            "existing_images": ["http://cdn.test/pets/old.jpg"],
            "cover_index": "1",
        },
        files=[
            ("image_files", ("nemo.jpg", b"jpeg-bytes", "image/jpeg")),
            ("image_files", ("notes.txt", b"text", "text/plain")),
            ("video_files", ("swim.mp4", b"mp4-bytes", "video/mp4")),
        ],
        headers=admin_headers,
    )

    assert r.status_code == 201
    body = r.json()
    pet = body["pet"]
    assert [rej["filename"] for rej in body["rejected"]] == ["notes.txt"]
    assert pet["images"][0].endswith("nemo.jpg")
    assert pet["images"][1] == "http://cdn.test/pets/old.jpg"
    assert pet["image"] == pet["images"][0]
    assert pet["videos"][0].startswith("http://cdn.test/pets/videos/")
    assert pet["video"] == pet["videos"][0]
    assert len(uploader.uploaded) == 2

    listed = client.get("/api/pets").json()["items"]
    assert listed[0]["id"] == pet["id"]


def test_invalid_pet_never_reaches_backend(client, admin_headers, uploader):
    bad = dict(PET_FIELDS, price=0, species="Dragon")
    r = client.post(
        "/api/pets",
        data={"data": json.dumps(bad)},
        files=[("image_files", ("nemo.jpg", b"jpeg-bytes", "image/jpeg"))],
        headers=admin_headers,
    )

    assert r.status_code == 422
    fields = {err["loc"][-1] for err in r.json()["detail"]}
    assert {"price", "species"} <= fields
    assert uploader.uploaded == []
    assert client.get("/api/pets").json()["total"] == 0


def test_upload_failure_writes_nothing(client, admin_headers, uploader):
    uploader.fail = True
    r = client.post(
        "/api/pets",
        data={"data": json.dumps(PET_FIELDS)},
        files=[("image_files", ("nemo.jpg", b"jpeg-bytes", "image/jpeg"))],
        headers=admin_headers,
    )

    assert r.status_code == 502
    assert client.get("/api/pets").json()["total"] == 0


def test_writes_require_admin(client, user_headers):
    r = client.post("/api/pets", data={"data": json.dumps(PET_FIELDS)})
    assert r.status_code == 401
    r = client.post("/api/pets", data={"data": json.dumps(PET_FIELDS)}, headers=user_headers)
    assert r.status_code == 403


def test_update_pet(client, admin_headers):
    pet = seed(client, images=["http://cdn.test/a.jpg", "http://cdn.test/b.jpg"])

    r = client.put(
        f"/api/pets/{pet.id}",
        data={
            "data": json.dumps({"price": 99}),
            "existing_images": ["http://cdn.test/b.jpg", "http://cdn.test/a.jpg"],
        },
        headers=admin_headers,
    )

    assert r.status_code == 200
    updated = r.json()["pet"]
    assert updated["price"] == 99
    assert updated["name"] == "Goldie"
    assert updated["image"] == "http://cdn.test/b.jpg"


def test_update_missing_pet_is_404(client, admin_headers):
    r = client.put(
        f"/api/pets/{uuid.uuid4()}",
        data={"data": json.dumps({"price": 99})},
        headers=admin_headers,
    )
    assert r.status_code == 404


def test_field_only_update_keeps_media(client, admin_headers):
    pet = seed(client, images=["http://cdn.test/a.jpg"], videos=["http://cdn.test/v.mp4"])

    r = client.put(
        f"/api/pets/{pet.id}",
        data={"data": json.dumps({"price": 99})},
        headers=admin_headers,
    )

    assert r.status_code == 200
    updated = r.json()["pet"]
    assert updated["price"] == 99
    assert updated["images"] == ["http://cdn.test/a.jpg"]
    assert updated["image"] == "http://cdn.test/a.jpg"
    assert updated["videos"] == ["http://cdn.test/v.mp4"]
    assert updated["video"] == "http://cdn.test/v.mp4"


def test_new_files_without_kept_list_are_appended(client, admin_headers, uploader):
    pet = seed(client, images=["http://cdn.test/a.jpg"], videos=["http://cdn.test/v.mp4"])

    r = client.put(
        f"/api/pets/{pet.id}",
        files=[("image_files", ("b.png", b"png-bytes", "image/png"))],
        headers=admin_headers,
    )

    assert r.status_code == 200
    updated = r.json()["pet"]
    assert updated["images"] == ["http://cdn.test/a.jpg", uploader.uploaded[0]]
    assert updated["videos"] == ["http://cdn.test/v.mp4"]


def test_clear_flag_empties_one_media_list(client, admin_headers):
    pet = seed(client, images=["http://cdn.test/a.jpg"], videos=["http://cdn.test/v.mp4"])

    r = client.put(
        f"/api/pets/{pet.id}",
        data={"clear_videos": "true"},
        headers=admin_headers,
    )

    assert r.status_code == 200
    updated = r.json()["pet"]
    assert updated["videos"] == []
    assert updated["images"] == ["http://cdn.test/a.jpg"]


def test_update_missing_pet_uploads_nothing(client, admin_headers, uploader):
    r = client.put(
        f"/api/pets/{uuid.uuid4()}",
        data={"data": json.dumps({"price": 99})},
        files=[("image_files", ("nemo.jpg", b"jpeg-bytes", "image/jpeg"))],
        headers=admin_headers,
    )

    assert r.status_code == 404
    assert uploader.uploaded == []


def test_toggles(client, admin_headers):
    pet = seed(client)

    r = client.post(f"/api/pets/{pet.id}/toggle-stock", headers=admin_headers)
    assert r.json()["in_stock"] is False

    r = client.post(f"/api/pets/{pet.id}/toggle-visibility", headers=admin_headers)
    assert r.json()["is_visible"] is False
    assert client.get("/api/pets").json()["total"] == 0


def test_delete_requires_confirmation(client, admin_headers):
    pet = seed(client)

    assert client.delete(f"/api/pets/{pet.id}", headers=admin_headers).status_code == 400
    assert client.get(f"/api/pets/{pet.id}").status_code == 200

    r = client.delete(f"/api/pets/{pet.id}?confirm=true", headers=admin_headers)
    assert r.status_code == 204
    assert client.get(f"/api/pets/{pet.id}").status_code == 404

    # Already gone: still not an error
    r = client.delete(f"/api/pets/{pet.id}?confirm=true", headers=admin_headers)
    assert r.status_code == 204


# -------- dashboard --------


def test_admin_search_and_stats(client, three_pets, admin_headers):
    r = client.get("/api/admin/pets?status_filter=hidden", headers=admin_headers)
    assert prices(r) == [30]

    r = client.get("/api/admin/pets?q=betta", headers=admin_headers)
    assert prices(r) == [50]

    stats = client.get("/api/admin/stats", headers=admin_headers).json()
    assert stats == {
        "total": 3,
        "in_stock": 3,
        "sold_out": 0,
        "visible": 2,
        "hidden": 1,
        "featured": 1,
    }


def test_dashboard_is_admin_only(client, user_headers):
    assert client.get("/api/admin/stats", headers=user_headers).status_code == 403
    assert client.get("/api/admin/pets").status_code == 401
