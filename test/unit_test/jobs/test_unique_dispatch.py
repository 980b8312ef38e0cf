"""
Unit tests for job dispatch and the unique job lock.

Redis is replaced by an in-memory double honouring ``SET NX EX`` so the
uniqueness rules can be checked without a broker.
"""

from typing import Optional
from unittest.mock import MagicMock, patch

import pytest

from kublade.jobs.base import LOCK_PREFIX, UniqueJobLock, dispatch, dispatch_unique
from kublade.jobs.template import dispatchers
from kublade.jobs.template.dispatchers import (
    DISPATCHER_QUEUE,
    GIT_IMPORT_TAGS,
    GIT_IMPORT_UNIQUE_ID,
    dispatch_git_import_dispatcher,
    git_import,
    schedule_git_import,
)


class FakeRedis:
    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.expiry: dict[str, Optional[int]] = {}

    def set(self, key, value, nx=False, ex=None):
        if nx and key in self.values:
            return None
        self.values[key] = value
        self.expiry[key] = ex
        return True

    def delete(self, key):
        self.expiry.pop(key, None)
        return 1 if self.values.pop(key, None) is not None else 0

    def exists(self, key):
        return 1 if key in self.values else 0


@pytest.fixture
def fake_redis():
    client = FakeRedis()
    with patch("kublade.jobs.base.get_redis", return_value=client):
        yield client


@pytest.fixture
def apply_async():
    with patch.object(git_import, "apply_async") as mock_apply:
        yield mock_apply


class TestUniqueJobLock:
    def test_acquire_is_exclusive(self, fake_redis):
        lock = UniqueJobLock("job", ttl_seconds=30)

        assert lock.acquire() is True
        assert lock.acquire() is False
        assert fake_redis.expiry[f"{LOCK_PREFIX}job"] == 30

    def test_release(self, fake_redis):
        lock = UniqueJobLock("job")
        lock.acquire()

        lock.release()

        assert lock.is_held() is False
        assert lock.acquire() is True


class TestDispatchUnique:
    def test_second_dispatch_is_refused_while_outstanding(self, fake_redis, apply_async):
        first = dispatch_git_import_dispatcher()
        second = dispatch_git_import_dispatcher()

        assert first is apply_async.return_value
        assert second is None
        apply_async.assert_called_once_with(kwargs={}, queue=DISPATCHER_QUEUE, headers={"tags": GIT_IMPORT_TAGS})

    def test_lock_is_released_after_task_returns(self, fake_redis, apply_async):
        dispatch_git_import_dispatcher()
        assert UniqueJobLock(GIT_IMPORT_UNIQUE_ID).is_held() is True

        git_import.after_return("SUCCESS", 3, "task-id", (), {}, None)

        assert UniqueJobLock(GIT_IMPORT_UNIQUE_ID).is_held() is False
        assert dispatch_git_import_dispatcher() is not None
        assert apply_async.call_count == 2

    def test_lock_is_released_after_failure(self, fake_redis, apply_async):
        dispatch_git_import_dispatcher()

        git_import.after_return("FAILURE", RuntimeError("boom"), "task-id", (), {}, None)

        assert UniqueJobLock(GIT_IMPORT_UNIQUE_ID).is_held() is False

    def test_enqueue_failure_releases_lock(self, fake_redis, apply_async):
        apply_async.side_effect = ConnectionError("broker down")

        with pytest.raises(ConnectionError):
            dispatch_git_import_dispatcher()

        assert UniqueJobLock(GIT_IMPORT_UNIQUE_ID).is_held() is False

    def test_task_without_unique_id_is_rejected(self, fake_redis):
        task = MagicMock(unique_id=None)
        task.name = "plain"

        with pytest.raises(ValueError, match="unique_id"):
            dispatch_unique(task, "default")

    def test_skipped_dispatch_is_logged(self, fake_redis, apply_async):
        dispatch_git_import_dispatcher()

        with patch("kublade.jobs.base.log_job_dispatch") as mock_log:
            dispatch_git_import_dispatcher()

        mock_log.assert_called_once_with(git_import.name, DISPATCHER_QUEUE, unique_id=GIT_IMPORT_UNIQUE_ID, dispatched=False)


class TestDispatch:
    def test_plain_dispatch_is_not_deduplicated(self):
        task = MagicMock()
        task.name = "kublade.jobs.template.actions.git_import"

        dispatch(task, "dispatchers", kwargs={"template_id": "t1"}, tags=["job"])
        dispatch(task, "dispatchers", kwargs={"template_id": "t1"}, tags=["job"])

        assert task.apply_async.call_count == 2
        task.apply_async.assert_called_with(kwargs={"template_id": "t1"}, queue="dispatchers", headers={"tags": ["job"]})


class TestDispatcherTasks:
    def test_schedule_reports_acceptance(self, fake_redis, apply_async):
        assert schedule_git_import() is True
        assert schedule_git_import() is False

    def test_dispatcher_task_returns_template_count(self):
        async def fake_with_job_session(handler):
            return ["t1", "t2"]

        with patch.object(dispatchers, "with_job_session", fake_with_job_session):
            assert git_import() == 2

    def test_task_declares_unique_id(self):
        assert git_import.unique_id == GIT_IMPORT_UNIQUE_ID
        assert git_import.name == "kublade.jobs.template.dispatchers.git_import"

    def test_beat_schedule_triggers_dispatcher(self):
        from kublade.jobs.celery_app import celery_app
        from kublade.server.core.config import settings

        entry = celery_app.conf.beat_schedule["template-git-import-dispatcher"]
        assert entry["task"] == schedule_git_import.name
        assert entry["schedule"] == settings.queue.git_import_interval_seconds
        assert celery_app.conf.task_serializer == "json"


@pytest.mark.asyncio
async def test_dispatch_template_imports_enqueues_each_template(session, owner):
    from kublade.core.database.entities.templates import Template
    from kublade.core.database.repositories import TemplateRepository

    templates = TemplateRepository(session)
    for template_id in ("a", "b", "c"):
        await templates.create(Template(id=template_id, user_id=owner.id, name=template_id))
    await templates.delete("b")

    with patch.object(dispatchers, "dispatch_git_import") as mock_dispatch:
        template_ids = await dispatchers.dispatch_template_imports(session)

    assert template_ids == ["a", "c"]
    assert [c.args for c in mock_dispatch.call_args_list] == [("a", DISPATCHER_QUEUE), ("c", DISPATCHER_QUEUE)]
