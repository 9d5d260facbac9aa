import asyncio

import pytest

from task_portal.infra.search.sqlite_fts import build_match_expression


def titles(res) -> list:
    return sorted(t["title"] for t in res.json()["data"])


class TestSearchValidation:
    async def test_query_is_required(self, client, alice):
        res = await client.get("/api/tasks/search", headers=alice.headers)
        assert res.status_code == 422
        assert "query" in res.json()["details"]["errors"]

    async def test_single_character_query_is_rejected(self, client, alice):
        res = await client.get("/api/tasks/search", params={"query": "a"}, headers=alice.headers)
        assert res.status_code == 422
        assert "query" in res.json()["details"]["errors"]

    async def test_very_long_query_is_rejected(self, client, alice):
        res = await client.get("/api/tasks/search", params={"query": "a" * 1000}, headers=alice.headers)
        assert res.status_code == 422
        assert "query" in res.json()["details"]["errors"]

    async def test_too_many_words_are_rejected_not_truncated(self, client, alice):
        query = " ".join(f"w{i}" for i in range(17))
        res = await client.get("/api/tasks/search", params={"query": query}, headers=alice.headers)
        assert res.status_code == 422
        assert "query" in res.json()["details"]["errors"]

    async def test_sixteen_words_are_accepted(self, client, alice):
        query = " ".join(f"w{i}" for i in range(16))
        res = await client.get("/api/tasks/search", params={"query": query}, headers=alice.headers)
        assert res.status_code == 200

    async def test_page_past_the_integer_ceiling_is_empty(self, client, alice, create_task, drain):
        await create_task(alice, title="Buy milk")
        await drain()
        res = await client.get("/api/tasks/search", params={"query": "milk", "page": 10**19}, headers=alice.headers)
        assert res.status_code == 200
        assert res.json()["data"] == []

    async def test_invalid_priority_is_rejected(self, client, alice):
        res = await client.get("/api/tasks/search", params={"query": "milk", "priority": "now"}, headers=alice.headers)
        assert res.status_code == 422

    @pytest.mark.parametrize("query", ["!@#$%^&*()", '"unbalanced', "NEAR(", "title:* OR -x", "--"])
    async def test_special_characters_do_not_break_search(self, client, alice, create_task, drain, query):
        await create_task(alice, title="Buy milk")
        await drain()
        res = await client.get("/api/tasks/search", params={"query": query}, headers=alice.headers)
        assert res.status_code == 200
        assert isinstance(res.json()["data"], list)


class TestSearchResults:
    async def test_matches_title_and_description(self, client, alice, create_task, drain):
        await create_task(alice, title="Buy milk")
        await create_task(alice, title="Call the plumber", description="Kitchen sink leaks, ask about milk frother")
        await create_task(alice, title="Renew passport")
        await drain()

        res = await client.get("/api/tasks/search", params={"query": "milk"}, headers=alice.headers)
        assert res.status_code == 200
        assert titles(res) == ["Buy milk", "Call the plumber"]
        assert res.json()["meta"]["total"] == 2

    async def test_prefix_and_case_insensitive(self, client, alice, create_task, drain):
        await create_task(alice, title="Schedule Dentist appointment")
        await drain()
        res = await client.get("/api/tasks/search", params={"query": "DENT"}, headers=alice.headers)
        assert titles(res) == ["Schedule Dentist appointment"]

    async def test_no_match_is_an_empty_page(self, client, alice, create_task, drain):
        await create_task(alice, title="Buy milk")
        await drain()
        res = await client.get("/api/tasks/search", params={"query": "zebra"}, headers=alice.headers)
        assert res.status_code == 200
        assert res.json()["data"] == []
        assert res.json()["meta"]["total"] == 0

    async def test_narrowing_filters(self, client, alice, create_task, drain):
        await create_task(alice, title="Pay rent", priority="urgent", is_completed=False)
        await create_task(alice, title="Pay gas bill", priority="low", is_completed=True)
        await create_task(alice, title="Pay water bill", priority="urgent", is_completed=True)
        await drain()

        res = await client.get(
            "/api/tasks/search",
            params={"query": "pay", "priority": "urgent", "is_completed": "true"},
            headers=alice.headers,
        )
        assert titles(res) == ["Pay water bill"]

    async def test_results_are_owner_scoped(self, client, alice, bob, create_task, drain):
        await create_task(alice, title="Alice groceries")
        await create_task(bob, title="Bob groceries")
        await drain()

        res = await client.get("/api/tasks/search", params={"query": "groceries"}, headers=alice.headers)
        assert titles(res) == ["Alice groceries"]

    async def test_search_paginates(self, client, alice, create_task, drain):
        for i in range(5):
            await create_task(alice, title=f"Errand {i}")
        await drain()

        res = await client.get("/api/tasks/search", params={"query": "errand", "per_page": 2}, headers=alice.headers)
        assert len(res.json()["data"]) == 2
        assert res.json()["meta"]["last_page"] == 3


class TestProjectionSync:
    async def test_document_mirrors_the_task(self, app, client, alice, create_task, drain):
        task = await create_task(alice, title="Buy milk", description="semi-skimmed")
        await drain()

        doc = await app.state.task_service.search_index.get_document(task["id"])
        assert doc["title"] == "Buy milk"
        assert doc["description"] == "semi-skimmed"
        assert doc["user_id"] == alice.user.id
        assert doc["priority"] == "low"
        assert doc["is_completed"] is False
        assert doc["due_date"] is None
        assert isinstance(doc["created_at"], int)

    async def test_update_is_reflected(self, client, alice, create_task, drain):
        task = await create_task(alice, title="Buy milk")
        await drain()
        await client.patch(f"/api/tasks/{task['id']}", json={"title": "Buy bread"}, headers=alice.headers)
        await drain()

        assert titles(await client.get("/api/tasks/search", params={"query": "milk"}, headers=alice.headers)) == []
        assert titles(await client.get("/api/tasks/search", params={"query": "bread"}, headers=alice.headers)) == ["Buy bread"]

    async def test_delete_is_reflected(self, app, client, alice, create_task, drain):
        task = await create_task(alice, title="Buy milk")
        await drain()
        await client.delete(f"/api/tasks/{task['id']}", headers=alice.headers)
        await drain()

        assert await app.state.task_service.search_index.get_document(task["id"]) is None
        res = await client.get("/api/tasks/search", params={"query": "milk"}, headers=alice.headers)
        assert res.json()["data"] == []

    async def test_out_of_order_notifications_converge_on_the_store(self, app, client, alice, create_task, drain):
        task = await create_task(alice, title="Buy milk")
        await drain()
        repo = app.state.task_service.repo
        sync = app.state.search_sync

        bread, _ = await repo.update(task["id"], {"title": "Buy bread"})
        cheese, _ = await repo.update(task["id"], {"title": "Buy cheese"})
        # newer write announced first, older one last
        await sync.task_saved(cheese)
        await sync.task_saved(bread)
        await drain()

        doc = await app.state.task_service.search_index.get_document(task["id"])
        assert doc["title"] == "Buy cheese"

    async def test_concurrent_updates_converge(self, client, alice, create_task, drain):
        task = await create_task(alice, title="Buy milk")
        await asyncio.gather(
            client.patch(f"/api/tasks/{task['id']}", json={"title": "Buy bread"}, headers=alice.headers),
            client.patch(f"/api/tasks/{task['id']}", json={"title": "Buy cheese"}, headers=alice.headers),
        )
        await drain()

        stored = (await client.get(f"/api/tasks/{task['id']}", headers=alice.headers)).json()["title"]
        word = stored.split()[-1]
        res = await client.get("/api/tasks/search", params={"query": word}, headers=alice.headers)
        assert titles(res) == [stored]

    async def test_late_notification_for_a_deleted_task_removes_it(self, app, client, alice, create_task, drain):
        task = await create_task(alice, title="Buy milk")
        await drain()
        repo = app.state.task_service.repo
        snapshot = await repo.get(task["id"])
        await repo.delete(task["id"])

        await app.state.search_sync.task_saved(snapshot)
        await drain()
        assert await app.state.task_service.search_index.get_document(task["id"]) is None

    async def test_index_failure_does_not_fail_the_write(self, app, client, alice, drain):
        sync = app.state.search_sync

        class BrokenIndex:
            calls = 0

            async def upsert(self, doc):
                BrokenIndex.calls += 1
                raise RuntimeError("index offline")

            async def delete(self, task_id):
                raise RuntimeError("index offline")

        sync.index = BrokenIndex()
        res = await client.post(
            "/api/tasks", json={"title": "Buy milk", "priority": "low", "is_completed": False}, headers=alice.headers
        )
        await drain()

        assert res.status_code == 201
        assert BrokenIndex.calls == sync.retries
        assert sync.failed == 1
        assert (await client.get(f"/api/tasks/{res.json()['id']}", headers=alice.headers)).status_code == 200


class TestInlineSync:
    @pytest.fixture
    def settings(self, settings):
        from dataclasses import replace

        return replace(settings, search_sync_mode="inline")

    async def test_write_is_searchable_immediately(self, client, alice, create_task):
        await create_task(alice, title="Buy milk")
        res = await client.get("/api/tasks/search", params={"query": "milk"}, headers=alice.headers)
        assert titles(res) == ["Buy milk"]


@pytest.mark.parametrize("text,expected", [
    ("milk", '"milk"*'),
    ("buy  milk", '"buy"* "milk"*'),
    ('"milk', '"milk"*'),
    ("!@#$", None),
])
def test_build_match_expression(text, expected):
    assert build_match_expression(text) == expected
