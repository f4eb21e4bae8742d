# tests/v1/test_posts.py
"""Tests for post, like and comment endpoints."""

from fastapi import status


def test_create_post(client, alice, alice_headers) -> None:
    """Test creating a new post."""
    response = client.post(
        "/api/v1/posts/",
        json={"content": "Hello huddle", "image": "https://cdn.example.com/a.png"},
        headers=alice_headers,
    )

    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["content"] == "Hello huddle"
    assert body["author"]["id"] == alice.id
    assert body["likes"] == []
    assert body["comments"] == []


def test_create_empty_post(client, alice_headers) -> None:
    response = client.post("/api/v1/posts/", json={"content": "  "}, headers=alice_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_list_and_get_posts(client, alice_headers, alice_post) -> None:
    listed = client.get("/api/v1/posts/", headers=alice_headers)
    assert [p["id"] for p in listed.json()] == [alice_post.id]

    single = client.get(f"/api/v1/posts/{alice_post.id}", headers=alice_headers)
    assert single.json()["content"] == "hello from alice"


def test_get_missing_post(client, alice_headers) -> None:
    response = client.get("/api/v1/posts/12345", headers=alice_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_toggle_like(client, bob, bob_headers, alice_post) -> None:
    """The like endpoint flips membership and returns liker ids."""
    url = f"/api/v1/posts/{alice_post.id}/like"

    first = client.put(url, headers=bob_headers)
    assert first.status_code == status.HTTP_200_OK
    assert first.json() == [bob.id]

    second = client.put(url, headers=bob_headers)
    assert second.json() == []


def test_comment_and_delete(client, bob, bob_headers, alice_post) -> None:
    url = f"/api/v1/posts/{alice_post.id}/comments"

    added = client.post(url, json={"text": "great post"}, headers=bob_headers)
    assert added.status_code == status.HTTP_200_OK
    [comment] = added.json()
    assert comment["user"]["username"] == "bob"

    removed = client.delete(f"{url}/{comment['id']}", headers=bob_headers)
    assert removed.status_code == status.HTTP_200_OK
    assert removed.json() == []


def test_blank_comment(client, bob_headers, alice_post) -> None:
    response = client.post(
        f"/api/v1/posts/{alice_post.id}/comments", json={"text": ""}, headers=bob_headers
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"] == "Comment text is required"


def test_delete_someone_elses_post(client, bob_headers, alice_post) -> None:
    response = client.delete(f"/api/v1/posts/{alice_post.id}", headers=bob_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_delete_own_post(client, alice_headers, alice_post) -> None:
    response = client.delete(f"/api/v1/posts/{alice_post.id}", headers=alice_headers)
    assert response.json() == {"status": "deleted"}

    missing = client.get(f"/api/v1/posts/{alice_post.id}", headers=alice_headers)
    assert missing.status_code == status.HTTP_404_NOT_FOUND


def test_delete_all_my_posts(client, alice_headers, alice_post) -> None:
    client.post("/api/v1/posts/", json={"content": "another"}, headers=alice_headers)

    response = client.delete("/api/v1/posts/me/all", headers=alice_headers)
    assert response.json() == {"deleted": 2}
