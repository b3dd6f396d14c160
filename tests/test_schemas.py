"""
Attachment descriptor and access token tests.
"""
from __future__ import annotations

import uuid
from datetime import timedelta

import pydantic
import pytest
from jose import JWTError

from mytasks.core.security import create_access_token, session_from_token
from mytasks.models.task import Task
from mytasks.schemas.attachment import Attachment, Visibility


class TestAttachment:
    def test_private_with_url_is_unrepresentable(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            Attachment(
                path="T1/1.pdf",
                bucket="tasks-private",
                visibility=Visibility.PRIVATE,
                url="https://example.test/x.pdf",
            )

    def test_public_without_url_is_unrepresentable(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            Attachment(path="T1/1.pdf", bucket="tasks-public", visibility=Visibility.PUBLIC)

    def test_filename(self) -> None:
        attachment = Attachment(path="T1/1723.pdf", bucket="tasks-private", visibility=Visibility.PRIVATE)
        assert attachment.filename == "1723.pdf"
        assert attachment.is_public is False

    def test_task_row_without_pdf_has_no_attachment(self) -> None:
        assert Task(title="x", user_id=uuid.uuid4()).attachment is None

    def test_task_row_maps_to_descriptor(self) -> None:
        task = Task(
            title="x",
            user_id=uuid.uuid4(),
            pdf_path="T1/1.pdf",
            pdf_bucket="tasks-public",
            pdf_url="https://example.test/storage/v1/object/public/tasks-public/T1/1.pdf",
            is_public_pdf=True,
        )
        assert task.attachment.visibility is Visibility.PUBLIC


class TestAccessToken:
    def test_round_trip(self) -> None:
        user_id = uuid.uuid4()
        session = session_from_token(create_access_token(str(user_id)))
        assert session.user_id == user_id

    def test_expired_token(self) -> None:
        token = create_access_token(str(uuid.uuid4()), expire_delta=timedelta(seconds=-10))
        with pytest.raises(JWTError):
            session_from_token(token)

    def test_wrong_audience(self) -> None:
        token = create_access_token(str(uuid.uuid4()), extra_claims={"aud": "anon"})
        with pytest.raises(JWTError):
            session_from_token(token)

    def test_non_uuid_subject(self) -> None:
        with pytest.raises(JWTError):
            session_from_token(create_access_token("not-a-uuid"))
