from unittest.mock import patch

import pytest
from httpx import AsyncClient

# Mark all tests in this module as async
pytestmark = pytest.mark.asyncio


@pytest.mark.parametrize("status", ["inactive", "paused", "running"])
async def test_queue_status(client: AsyncClient, owner, auth_headers, status):
    with patch("kublade.server.api.v1.queue.get_queue_status", return_value=status):
        response = await client.get("/api/queue/status", headers=await auth_headers(owner))

    assert response.status_code == 200
    assert response.json() == {"status": "success", "message": "Queue status retrieved", "data": {"status": status}}


async def test_queue_status_requires_permission(client: AsyncClient, member, auth_headers):
    with patch("kublade.server.api.v1.queue.get_queue_status") as mock_status:
        response = await client.get("/api/queue/status", headers=await auth_headers(member))

    assert response.status_code == 401
    mock_status.assert_not_called()
