"""Re-running the catalog seed over an edited catalog."""

import pytest

from app.rbac.permission_seed import seed
from app.services import route_service


@pytest.mark.asyncio
async def test_reseed_keeps_renamed_defaults(db):
    settings_route = await route_service.get_route_by_path("/settings", db)
    await route_service.update_route(settings_route.id, db, {"path": "/preferences"})
    await db.commit()
    before = len(await route_service.list_routes_flat(db))

    await seed(db)

    assert len(await route_service.list_routes_flat(db)) == before
    assert await route_service.get_route_by_path("/settings", db) is None


@pytest.mark.asyncio
async def test_reseed_recreates_deleted_defaults(db):
    leaf = await route_service.get_route_by_path("/settings/appearance", db)
    await route_service.delete_route(leaf.id, db)
    await db.commit()

    await seed(db)

    restored = await route_service.get_route_by_path("/settings/appearance", db)
    parent = await route_service.get_route_by_path("/settings", db)
    assert restored is not None
    assert restored.parent_id == parent.id
