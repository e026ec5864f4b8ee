def _h(email: str):
    return {"x-auth-request-user": email.split("@")[0], "x-auth-request-email": email}


def test_anonymous_get_hides_protected_columns(client, make_user):
    user = make_user("alice@example.com", display_name="Alice")
    r = client.get(f"/entities/users/get/{user.id}")
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["display_name"] == "Alice"
    assert "email" not in body
    assert "is_superadmin" not in body
    assert r.headers["cache-control"] == "max-age=0"
    assert r.headers["etag"].startswith('"')


def test_signed_in_user_sees_email_of_others(client, make_user):
    user = make_user("alice@example.com")
    r = client.get(f"/entities/users/get/{user.id}", headers=_h("bob@example.com"))
    assert r.status_code == 200
    assert r.json()["email"] == "alice@example.com"
    assert r.json()["is_superadmin"] is False


def test_conditional_get_with_etag_and_hash_suffix(client, make_user):
    user = make_user("alice@example.com")
    first = client.get(f"/entities/users/get/{user.id}")
    etag = first.headers["etag"]

    r = client.get(f"/entities/users/get/{user.id}", headers={"If-None-Match": etag})
    assert r.status_code == 304
    assert r.content == b""

    r = client.get(f"/entities/users/get/{user.id}:{etag.strip(chr(34))}")
    assert r.status_code == 304

    r = client.get(f"/entities/users/get/{user.id}", headers={"If-None-Match": '"stale"'})
    assert r.status_code == 200


def test_multi_get_reports_each_id(client, make_user):
    a = make_user("a@example.com")
    b = make_user("b@example.com")
    r = client.get(f"/entities/users/get/{a.id},{b.id},999")
    assert r.status_code == 207, r.text
    items = r.json()
    assert [item["code"] for item in items] == [200, 200, 404]
    assert [item["id"] for item in items] == [str(a.id), str(b.id), "999"]
    assert items[0]["hash"]
    assert items[2]["data"] == {"detail": "entity not found", "field": None}


def test_user_updates_own_profile(client, make_user):
    user = make_user("carol@example.com", display_name="Carol")
    r = client.post(f"/entities/users/set/{user.id}", json={"display_name": "Caroline"}, headers=_h("carol@example.com"))
    assert r.status_code == 204, r.text
    r = client.get(f"/entities/users/get/{user.id}")
    assert r.json()["display_name"] == "Caroline"


def test_others_cannot_write_profile(client, make_user):
    user = make_user("carol@example.com")
    r = client.post(f"/entities/users/set/{user.id}", json={"display_name": "Hacked"}, headers=_h("mallory@example.com"))
    assert r.status_code == 403
    assert r.json() == {"detail": "access denied for writing the field 'display_name'", "field": None}

    r = client.post(f"/entities/users/set/{user.id}", json={"display_name": "Hacked"})
    assert r.status_code == 403


def test_superadmin_can_edit_others_but_not_system_fields(client, make_user):
    make_user("root@example.com", is_superadmin=True)
    user = make_user("dave@example.com")
    r = client.post(f"/entities/users/set/{user.id}", json={"display_name": "Dave"}, headers=_h("root@example.com"))
    assert r.status_code == 204
    r = client.post(f"/entities/users/set/{user.id}", json={"is_superadmin": True}, headers=_h("root@example.com"))
    assert r.status_code == 403
    assert r.json()["detail"] == "access denied for writing the field 'is_superadmin'"


def test_write_validation_errors(client, make_user):
    user = make_user("erin@example.com")
    headers = _h("erin@example.com")

    r = client.post(f"/entities/users/set/{user.id}", json={"display_name": ""}, headers=headers)
    assert r.status_code == 400
    assert r.json()["field"] == "display_name"

    r = client.post(f"/entities/users/set/{user.id}", json={"display_name": 42}, headers=headers)
    assert r.status_code == 400
    assert r.json()["field"] == "display_name"

    r = client.post(f"/entities/users/set/{user.id}", json={}, headers=headers)
    assert r.status_code == 400
    assert r.json() == {"detail": "missing data", "field": "data"}

    r = client.post(f"/entities/users/set/{user.id}", json={"nickname": "e"}, headers=headers)
    assert r.status_code == 400
    assert r.json() == {"detail": "unknown field 'nickname'", "field": "nickname"}


def test_email_is_not_writable(client, make_user):
    make_user("root@example.com", is_superadmin=True)
    user = make_user("gwen@example.com")

    for headers in (_h("gwen@example.com"), _h("root@example.com")):
        r = client.post(f"/entities/users/set/{user.id}", json={"email": "new@example.com"}, headers=headers)
        assert r.status_code == 403
        assert r.json()["detail"] == "access denied for writing the field 'email'"

    r = client.get("/me", headers=_h("gwen@example.com"))
    assert r.json()["id"] == user.id


def test_set_missing_user(client, make_user):
    make_user("root@example.com", is_superadmin=True)
    r = client.post("/entities/users/set/999", json={"display_name": "x"}, headers=_h("root@example.com"))
    assert r.status_code == 404
    assert r.json()["detail"] == "entity not found"


def test_user_listing_is_disabled(client):
    r = client.get("/entities/users/list")
    assert r.status_code == 501
    assert r.json()["detail"] == "unknown action"


def test_routing_errors(client, make_user):
    user = make_user("frank@example.com")
    assert client.get("/entities/users/get").status_code == 400
    assert client.get(f"/entities/users/get/{user.id}/extra").status_code == 400
    r = client.get(f"/entities/nope/get/{user.id}")
    assert r.status_code == 404
    assert r.json() == {"detail": "unknown entity", "field": "entity"}
    assert client.get(f"/entities/users/frobnicate/{user.id}").status_code == 501
    assert client.post(f"/entities/users/get/{user.id}", json={"a": 1}).status_code == 501
