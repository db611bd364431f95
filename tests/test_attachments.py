from unittest.mock import patch

import pytest
import requests
from django.urls import reverse

from apps.attachments.resolver import AttachmentReference, list_user_documents, resolve
from apps.attachments.storage import BlobStorage
from core.exceptions import AttachmentUnavailable, ConfigurationError, NotFoundError

PDF = b"%PDF-1.4 resume"


@pytest.fixture
def storage():
    return BlobStorage("https://storage.example.com", "service-role", timeout=5)


@pytest.fixture
def mock_get():
    with patch("apps.attachments.storage.requests.get") as mocked:
        yield mocked


@pytest.fixture
def mock_post():
    with patch("apps.attachments.storage.requests.post") as mocked:
        yield mocked


def test_storage_requires_configuration():
    with pytest.raises(ConfigurationError):
        BlobStorage("", "")


def test_resolve_uses_direct_download(storage, mock_get, fake_response):
    mock_get.return_value = fake_response(200, content=PDF, headers={"Content-Type": "application/pdf"})

    attachment = resolve(AttachmentReference("cvs", "user-1/resume.pdf"), storage)

    assert attachment.content == PDF
    assert attachment.mime_type == "application/pdf"
    assert attachment.filename == "resume.pdf"
    url = mock_get.call_args.args[0]
    assert url == "https://storage.example.com/storage/v1/object/cvs/user-1/resume.pdf"
    assert mock_get.call_args.kwargs["headers"]["Authorization"] == "Bearer service-role"


def test_resolve_falls_back_to_public_url(storage, mock_get, fake_response):
    mock_get.side_effect = [
        fake_response(400, {"error": "not found"}),
        fake_response(200, content=PDF, headers={"Content-Type": "application/octet-stream"}),
    ]

    attachment = resolve(AttachmentReference("cover-letters", "letter.pdf"), storage)

    assert attachment.content == PDF
    assert attachment.mime_type == "application/pdf"
    assert attachment.filename == "letter.pdf"
    public_url = mock_get.call_args_list[1].args[0]
    assert public_url == "https://storage.example.com/storage/v1/object/public/cover-letters/letter.pdf"


def test_resolve_raises_when_both_strategies_fail(storage, mock_get, fake_response):
    mock_get.side_effect = [
        requests.ConnectionError("reset by peer"),
        fake_response(404, text="Not Found"),
    ]

    with pytest.raises(AttachmentUnavailable) as excinfo:
        resolve(AttachmentReference("cvs", "user-1/missing.pdf"), storage)

    assert excinfo.value.payload["bucket"] == "cvs"
    assert excinfo.value.payload["reference"] == "user-1/missing.pdf"
    assert "404" in excinfo.value.payload["error"]
    assert mock_get.call_count == 2


def test_resolve_allows_own_folder_and_root_files(storage, mock_get, fake_response):
    mock_get.return_value = fake_response(200, content=PDF, headers={"Content-Type": "application/pdf"})

    resolve(AttachmentReference("cvs", "user-1/resume.pdf", "user-1"), storage)
    resolve(AttachmentReference("cvs", "resume.pdf", "user-1"), storage)

    assert mock_get.call_count == 2


@pytest.mark.parametrize(
    "path",
    ["user-2/resume.pdf", "user-1/../user-2/resume.pdf", "../resume.pdf", "user-1/nested/resume.pdf"],
)
def test_resolve_refuses_paths_outside_user_folder(storage, mock_get, path):
    with pytest.raises(NotFoundError):
        resolve(AttachmentReference("cvs", path, "user-1"), storage)

    mock_get.assert_not_called()


def test_list_user_documents_from_user_folder(storage, mock_post, fake_response):
    mock_post.return_value = fake_response(
        200,
        [
            {"id": "f1", "name": "resume.pdf", "metadata": {"size": 1024}, "created_at": "2025-01-01T00:00:00Z"},
            {"id": None, "name": "archive"},
            {"id": "f0", "name": ".emptyFolderPlaceholder"},
        ],
    )

    files = list_user_documents("user-1", "cvs", storage)

    assert files == [
        {
            "id": "user-1/resume.pdf",
            "name": "resume.pdf",
            "path": "user-1/resume.pdf",
            "size": 1024,
            "created_at": "2025-01-01T00:00:00Z",
            "updated_at": None,
        }
    ]
    assert mock_post.call_args.kwargs["json"]["prefix"] == "user-1"


def test_list_user_documents_falls_back_to_root(storage, mock_post, fake_response):
    mock_post.side_effect = [
        fake_response(200, []),
        fake_response(200, [{"id": "f9", "name": "legacy.pdf", "metadata": {"size": 10}}]),
    ]

    files = list_user_documents("user-1", "cvs", storage)

    assert [item["path"] for item in files] == ["legacy.pdf"]
    assert mock_post.call_args_list[1].kwargs["json"]["prefix"] == ""


@pytest.mark.django_db
def test_document_list_endpoint_validates_bucket(api_client):
    response = api_client.get(reverse("document-list"), {"bucket": "avatars"})
    assert response.status_code == 400


@pytest.mark.django_db
def test_document_list_endpoint(api_client, user, mock_post, fake_response):
    mock_post.return_value = fake_response(200, [{"id": "f1", "name": "cv.pdf", "metadata": {"size": 5}}])

    response = api_client.get(reverse("document-list"), {"bucket": "cvs"})

    assert response.status_code == 200
    assert response.json()["files"][0]["path"] == f"{user.id}/cv.pdf"
