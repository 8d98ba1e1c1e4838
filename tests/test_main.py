import pytest

from repairdesk.config import Config
from repairdesk.main import bootstrap


@pytest.mark.asyncio
async def test_bootstrap_wires_routers_and_store():
    config = Config(BOT_TOKEN="123:abc", APP_ID="test-app", DATABASE_URL_OVERRIDE="sqlite+aiosqlite:///:memory:")

    app = await bootstrap(config)
    try:
        assert app.registry.app_id == "test-app"
        assert app.dispatcher["config"] is config
        assert len(app.dispatcher.sub_routers) == 5
        assert await app.store.list("artifacts/test-app/users/1/bookings") == []
    finally:
        await app.shutdown()
