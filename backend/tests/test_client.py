from unittest.mock import MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient

from comment_board.client import CommentsClient, CommentsClientError
from comment_board.main import app

BASE_URL = "http://testserver/api"


@pytest.fixture
def comments_client(repository):
    return CommentsClient(BASE_URL, "abc123", http_client=TestClient(app))


def test_post_list_delete_round_trip(comments_client):
    created = comments_client.post_comment("homepage", "Great page!", sender="Ana")
    assert created["text"] == "Great page!"
    assert created["sender"] == "Ana"

    assert comments_client.get_comments("homepage") == [created]

    assert comments_client.delete_comment("homepage", created["id"]) == {
        "message": "Comment deleted successfully"
    }
    assert comments_client.get_comments("homepage") == []


def test_default_sender_is_anonymous(comments_client):
    assert comments_client.post_comment("homepage", "hi")["sender"] == "Anonymous"


def test_server_error_message_is_surfaced(comments_client):
    with pytest.raises(CommentsClientError) as excinfo:
        comments_client.delete_comment("homepage", "missing_00000000")

    assert excinfo.value.message == "Comment not found"
    assert excinfo.value.status_code == 404


def test_invalid_student_number_from_server(repository):
    client = CommentsClient(BASE_URL, "a", http_client=TestClient(app))

    with pytest.raises(CommentsClientError) as excinfo:
        client.get_comments("homepage")

    assert excinfo.value.status_code == 401


def test_local_validation_skips_request():
    http = MagicMock()
    client = CommentsClient(BASE_URL, "abc123", http_client=http)

    with pytest.raises(CommentsClientError):
        client.get_comments("")
    with pytest.raises(CommentsClientError):
        client.post_comment("homepage", "")
    with pytest.raises(CommentsClientError, match="280 characters or less"):
        client.post_comment("homepage", "x" * 281)
    with pytest.raises(CommentsClientError):
        client.delete_comment("homepage", "")

    http.request.assert_not_called()


def test_student_number_required():
    with pytest.raises(CommentsClientError):
        CommentsClient(BASE_URL, "")


def test_non_json_error_uses_default_message():
    transport = httpx.MockTransport(lambda request: httpx.Response(502, text="Bad Gateway"))
    client = CommentsClient(BASE_URL, "abc123", http_client=httpx.Client(transport=transport))

    with pytest.raises(CommentsClientError) as excinfo:
        client.get_comments("homepage")

    assert excinfo.value.message == "Failed to get comments"
    assert excinfo.value.status_code == 502


def test_transport_errors_are_wrapped():
    def fail(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = CommentsClient(BASE_URL, "abc123", http_client=httpx.Client(transport=httpx.MockTransport(fail)))

    with pytest.raises(CommentsClientError, match="Failed to post comment"):
        client.post_comment("homepage", "hi")
