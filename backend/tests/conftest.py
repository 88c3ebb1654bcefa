from unittest.mock import patch

import boto3
import pytest
from moto import mock_aws

from comment_board.config import settings
from comment_board.limiter import limiter
from comment_board.services.repository import CommentRepository
from comment_board.services.store import FileCommentStore

TEST_BUCKET = "test-comments-bucket"


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Every test starts with fresh rate-limit counters."""
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def s3_client():
    """Provide a mocked S3 client with a test bucket."""
    with mock_aws():
        client = boto3.client("s3", region_name=settings.AWS_REGION)
        client.create_bucket(Bucket=TEST_BUCKET)
        yield client


@pytest.fixture
def file_store(tmp_path):
    return FileCommentStore(tmp_path / "comments")


@pytest.fixture
def repository(file_store):
    """Route-level repository backed by a throwaway data directory."""
    repo = CommentRepository(file_store)
    with patch("comment_board.routes.comments.comment_repository", repo):
        yield repo
