import asyncio
import json

from tests.support import FakeSession, make_world


def test_audience_is_everyone_sharing_a_conversation():
    async def scenario():
        world = await make_world()
        audience = await world.service.presence.audience(world.users["alice"])
        assert audience == {world.users["bob"], world.users["carol"]}

        # dave shares nothing with anyone
        assert await world.service.presence.audience(world.users["dave"]) == set()

    asyncio.run(scenario())


def test_audience_reflects_membership_changes_immediately():
    async def scenario():
        world = await make_world()
        presence = world.service.presence
        assert world.users["dave"] not in await presence.audience(world.users["carol"])

        await world.store.add_member(world.conversations["group"], world.users["dave"])

        assert world.users["dave"] in await presence.audience(world.users["carol"])

    asyncio.run(scenario())


def test_online_announcement_reaches_audience_sessions():
    async def scenario():
        world = await make_world()
        registry = world.service.registry
        bob, carol, dave = FakeSession("bob"), FakeSession("carol"), FakeSession("dave")
        registry.add(world.users["bob"], bob)
        registry.add(world.users["carol"], carol)
        registry.add(world.users["dave"], dave)
        registry.add(world.users["alice"], FakeSession("alice"))

        await world.service.presence.announce_online(world.users["alice"])

        expected = {"type": "user_status", "userId": world.users["alice"], "status": "online"}
        assert [json.loads(p) for p in bob.received] == [expected]
        assert [json.loads(p) for p in carol.received] == [expected]
        assert dave.received == []
        assert (await world.store.get_user(world.users["alice"])).status == "online"

    asyncio.run(scenario())


def test_offline_announcement_is_skipped_when_user_is_back_online():
    async def scenario():
        world = await make_world()
        registry = world.service.registry
        bob = FakeSession("bob")
        registry.add(world.users["bob"], bob)
        registry.add(world.users["alice"], FakeSession("alice-new"))

        await world.service.presence.announce_offline(world.users["alice"])

        assert bob.received == []

    asyncio.run(scenario())


def test_offline_announcement_updates_status_cache():
    async def scenario():
        world = await make_world()
        bob = FakeSession("bob")
        world.service.registry.add(world.users["bob"], bob)
        await world.store.update_user_status(world.users["alice"], "online")

        await world.service.presence.announce_offline(world.users["alice"])

        assert json.loads(bob.received[0])["status"] == "offline"
        assert (await world.store.get_user(world.users["alice"])).status == "offline"

    asyncio.run(scenario())
