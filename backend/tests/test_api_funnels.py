import json

from funnel_builder.domain.blocks import create_block
from funnel_builder.domain.layout import create_section
from funnel_builder.extensions import db
from funnel_builder.models.funnel import Funnel


def valid_content():
    section = create_section("single")
    section["columns"][0]["blocks"] = [create_block("text")]
    return {"sections": [section]}


def create(client, headers, **data):
    payload = {"name": "Spring Launch", **data}
    response = client.post("/api/v1/funnels", json=payload, headers=headers)
    assert response.status_code == 201, response.get_json()
    return response.get_json()["id"]


def test_health(client):
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.get_json()["database"] == "ok"


def test_openapi_document_is_served(client):
    response = client.get("/openapi/funnels.yaml")
    assert response.status_code == 200
    assert b"Funnel Builder API" in response.data


def test_login_rejects_bad_credentials(client, user):
    response = client.post("/api/v1/auth/login", json={"email": user.email, "password": "wrong"})
    assert response.status_code == 401

    assert client.post("/api/v1/auth/login", json={}).status_code == 400


def test_me(client, auth_headers, user):
    response = client.get("/api/v1/auth/me", headers=auth_headers)
    assert response.status_code == 200
    assert response.get_json()["email"] == user.email


def test_requires_token(client):
    assert client.get("/api/v1/funnels").status_code == 401


def test_create_derives_unique_slugs(client, auth_headers):
    first = create(client, auth_headers)
    second = create(client, auth_headers)

    assert db.session.get(Funnel, first).slug == "spring-launch"
    assert db.session.get(Funnel, second).slug == "spring-launch-2"


def test_explicit_duplicate_slug_conflicts(client, auth_headers):
    create(client, auth_headers, slug="promo")
    response = client.post(
        "/api/v1/funnels",
        json={"name": "Other", "slug": "promo"},
        headers=auth_headers,
    )
    assert response.status_code == 409


def test_slugs_are_scoped_per_owner(client, auth_headers, other_headers):
    create(client, auth_headers, slug="promo")
    create(client, other_headers, slug="promo")


def test_create_validates_name(client, auth_headers):
    response = client.post("/api/v1/funnels", json={"name": ""}, headers=auth_headers)
    assert response.status_code == 400
    assert response.get_json()["error"] == "InvariantViolation"


def test_create_accepts_json_encoded_content(client, auth_headers):
    funnel_id = create(
        client,
        auth_headers,
        content=json.dumps(valid_content()),
        settings=json.dumps({"maxWidth": "960px"}),
    )

    data = client.get(f"/api/v1/funnels/{funnel_id}", headers=auth_headers).get_json()
    assert len(data["content"]["sections"]) == 1
    assert data["settings"]["maxWidth"] == "960px"
    assert data["settings"]["backgroundColor"] == "#ffffff"


def test_invalid_json_content_is_rejected(client, auth_headers):
    funnel_id = create(client, auth_headers)
    response = client.put(
        f"/api/v1/funnels/{funnel_id}",
        json={"content": "{broken"},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert "valid JSON" in response.get_json()["message"]


def test_list_with_stats(client, auth_headers, other_headers):
    create(client, auth_headers)
    funnel_id = create(client, auth_headers, name="Webinar")
    create(client, other_headers)

    client.get(f"/api/v1/funnels/{funnel_id}", headers=auth_headers)
    client.get(f"/api/v1/funnels/{funnel_id}", headers=auth_headers)
    client.post(f"/api/v1/funnels/{funnel_id}/conversions", headers=auth_headers)

    data = client.get("/api/v1/funnels", headers=auth_headers).get_json()
    assert len(data["funnels"]) == 2
    assert data["stats"]["total_funnels"] == 2
    assert data["stats"]["total_views"] == 2
    assert data["stats"]["total_conversions"] == 1
    assert data["stats"]["avg_conversion_rate"] == 25.0


def test_show_counts_views(client, auth_headers):
    funnel_id = create(client, auth_headers)
    client.get(f"/api/v1/funnels/{funnel_id}", headers=auth_headers)
    data = client.get(f"/api/v1/funnels/{funnel_id}", headers=auth_headers).get_json()
    assert data["views"] == 2


def test_only_owner_can_touch_a_funnel(client, auth_headers, other_headers):
    funnel_id = create(client, auth_headers)

    assert client.get(f"/api/v1/funnels/{funnel_id}", headers=other_headers).status_code == 403
    assert client.put(
        f"/api/v1/funnels/{funnel_id}", json={"name": "Mine"}, headers=other_headers
    ).status_code == 403
    assert client.delete(f"/api/v1/funnels/{funnel_id}", headers=other_headers).status_code == 403
    assert client.post(f"/api/v1/funnels/{funnel_id}/publish", headers=other_headers).status_code == 403


def test_missing_funnel(client, auth_headers):
    assert client.get("/api/v1/funnels/999", headers=auth_headers).status_code == 404


def test_update_and_edit_payload(client, auth_headers):
    funnel_id = create(client, auth_headers)

    response = client.put(
        f"/api/v1/funnels/{funnel_id}",
        json={"name": "Renamed", "description": "Autumn", "content": valid_content()},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.get_json()["name"] == "Renamed"

    document = client.get(f"/api/v1/funnels/{funnel_id}/edit", headers=auth_headers).get_json()["funnel"]
    assert document["name"] == "Renamed"
    assert document["description"] == "Autumn"
    assert document["status"] == "draft"
    assert len(document["content"]["sections"]) == 1


def test_empty_update_is_rejected(client, auth_headers):
    funnel_id = create(client, auth_headers)
    response = client.put(f"/api/v1/funnels/{funnel_id}", json={}, headers=auth_headers)
    assert response.status_code == 400


def test_stale_update_conflicts(client, auth_headers):
    funnel_id = create(client, auth_headers)
    response = client.put(
        f"/api/v1/funnels/{funnel_id}",
        json={"name": "Late"},
        headers={**auth_headers, "If-Unmodified-Since": "2000-01-01T00:00:00Z"},
    )
    assert response.status_code == 409

    bad = client.put(
        f"/api/v1/funnels/{funnel_id}",
        json={"name": "Late"},
        headers={**auth_headers, "If-Unmodified-Since": "not a date"},
    )
    assert bad.status_code == 400


def test_publish_lifecycle(client, auth_headers):
    funnel_id = create(client, auth_headers)

    # nothing to publish yet
    assert client.post(f"/api/v1/funnels/{funnel_id}/publish", headers=auth_headers).status_code == 400

    client.post(f"/api/v1/funnels/{funnel_id}/autosave", json={"content": valid_content()}, headers=auth_headers)

    published = client.post(f"/api/v1/funnels/{funnel_id}/publish", headers=auth_headers)
    assert published.status_code == 200
    assert published.get_json()["status"] == "published"

    funnel = db.session.get(Funnel, funnel_id)
    assert funnel.is_published is True
    assert funnel.published_at is not None

    # already published
    assert client.post(f"/api/v1/funnels/{funnel_id}/publish", headers=auth_headers).status_code == 409

    assert client.post(f"/api/v1/funnels/{funnel_id}/unpublish", headers=auth_headers).status_code == 200
    db.session.refresh(funnel)
    assert (funnel.status, funnel.is_published, funnel.published_at) == ("draft", False, None)


def test_archive_and_restore(client, auth_headers):
    funnel_id = create(client, auth_headers)

    assert client.post(f"/api/v1/funnels/{funnel_id}/archive", headers=auth_headers).status_code == 200
    assert client.post(f"/api/v1/funnels/{funnel_id}/publish", headers=auth_headers).status_code == 409

    # archived funnels come back through restore only
    unpublished = client.post(f"/api/v1/funnels/{funnel_id}/unpublish", headers=auth_headers)
    assert unpublished.status_code == 409
    assert db.session.get(Funnel, funnel_id).status == "archived"

    other = create(client, auth_headers, name="Other")
    client.post(f"/api/v1/funnels/{other}/archive", headers=auth_headers)
    response = client.post(f"/api/v1/funnels/{other}/restore", headers=auth_headers)
    assert response.get_json()["status"] == "draft"
    assert client.post(f"/api/v1/funnels/{other}/restore", headers=auth_headers).status_code == 409


def test_publish_refuses_invalid_structure(client, auth_headers):
    content = valid_content()
    grid = create_block("grid")
    grid["children"] = [create_block("video")]
    content["sections"][0]["columns"][0]["blocks"].append(grid)

    funnel_id = create(client, auth_headers, content=content)

    report = client.get(f"/api/v1/funnels/{funnel_id}/validate", headers=auth_headers).get_json()
    assert report["is_valid"] is False
    assert "video cannot be a child of grid" in report["errors"][0]

    response = client.post(f"/api/v1/funnels/{funnel_id}/publish", headers=auth_headers)
    assert response.status_code == 400


def test_autosave_migrates_legacy_blocks(client, auth_headers):
    funnel_id = create(client, auth_headers)
    legacy = [{"id": "b1", "type": "text", "content": {"text": "Hi"}, "position": {"x": 0, "y": 0}}]

    response = client.post(
        f"/api/v1/funnels/{funnel_id}/autosave",
        json={"content": json.dumps(legacy)},
        headers=auth_headers,
    )
    assert response.status_code == 200

    funnel = db.session.get(Funnel, funnel_id)
    blocks = funnel.content["sections"][0]["columns"][0]["blocks"]
    assert [b["id"] for b in blocks] == ["b1"]

    assert client.post(
        f"/api/v1/funnels/{funnel_id}/autosave", json={}, headers=auth_headers
    ).status_code == 400


def test_delete(client, auth_headers):
    funnel_id = create(client, auth_headers)
    assert client.delete(f"/api/v1/funnels/{funnel_id}", headers=auth_headers).status_code == 200
    assert client.get(f"/api/v1/funnels/{funnel_id}", headers=auth_headers).status_code == 404


def test_block_rules(client, auth_headers):
    rules = client.get("/api/v1/blocks/rules", headers=auth_headers).get_json()
    assert rules["form"]["max_children"] == 1
    assert rules["grid"]["suggestions"][0]["type"] == "ecommerce"


def test_malformed_content_is_rejected(client, auth_headers):
    funnel_id = create(client, auth_headers, content=valid_content())

    response = client.put(
        f"/api/v1/funnels/{funnel_id}", json={"content": {"sections": [1]}}, headers=auth_headers
    )
    assert response.status_code == 400

    content = valid_content()
    container = create_block("container")
    container["children"] = [{"id": "b"}]
    content["sections"][0]["columns"][0]["blocks"].append(container)
    response = client.put(f"/api/v1/funnels/{funnel_id}", json={"content": content}, headers=auth_headers)
    assert response.status_code == 400

    assert client.post(
        f"/api/v1/funnels/{funnel_id}/autosave",
        json={"content": {"sections": [{"id": "s1"}]}},
        headers=auth_headers,
    ).status_code == 400

    report = client.get(f"/api/v1/funnels/{funnel_id}/validate", headers=auth_headers)
    assert report.status_code == 200
    assert report.get_json()["is_valid"] is True


def test_malformed_stored_content_loads_as_empty_sections(client, auth_headers):
    funnel_id = create(client, auth_headers)
    funnel = db.session.get(Funnel, funnel_id)
    funnel.content = {"sections": [1, {"id": "s1"}]}
    db.session.commit()

    report = client.get(f"/api/v1/funnels/{funnel_id}/validate", headers=auth_headers).get_json()
    assert report == {"is_valid": True, "errors": [], "warnings": []}

    document = client.get(f"/api/v1/funnels/{funnel_id}/edit", headers=auth_headers).get_json()["funnel"]
    assert document["content"] == {"sections": []}


def test_unpublish_requires_a_published_funnel(client, auth_headers):
    funnel_id = create(client, auth_headers)
    response = client.post(f"/api/v1/funnels/{funnel_id}/unpublish", headers=auth_headers)
    assert response.status_code == 409
    assert "Only published funnels" in response.get_json()["message"]
