import pytest

from notesaid.errors import NotFound
from notesaid.quick_links import QuickLinkService

LINKS = [{"name": "Book", "url": "https://example.com/book.pdf"}]


@pytest.fixture
def quick_links(admin_db, cache):
    return QuickLinkService(admin_db, cache)


class TestQuickLinkService:
    async def test_public_view_sorted_by_type(self, quick_links):
        await quick_links.create("Papers", ["dsa"], "pyqs", LINKS, "MinavKaria")
        await quick_links.create("Books", ["dsa", "os"], "books", LINKS, "MinavKaria")

        listed = (await quick_links.for_subject("dsa"))["quickLinks"]

        assert [q["linkType"] for q in listed] == ["books", "pyqs"]
        assert [q["templateName"] for q in (await quick_links.for_subject("os"))["quickLinks"]] == ["Books"]

    async def test_create_invalidates_cached_views(self, quick_links, cache):
        await quick_links.create("Books", ["dsa"], "books", LINKS, "MinavKaria")
        assert len((await quick_links.for_subject("dsa"))["quickLinks"]) == 1
        assert len((await quick_links.list())["quickLinks"]) == 1

        await quick_links.create("More", ["dsa"], "other", LINKS, "MinavKaria")

        assert len((await quick_links.for_subject("dsa"))["quickLinks"]) == 2
        assert len((await quick_links.list())["quickLinks"]) == 2

    async def test_update_invalidates_old_and_new_subjects(self, quick_links):
        created = await quick_links.create("Books", ["dsa"], "books", LINKS, "MinavKaria")
        await quick_links.for_subject("dsa")
        await quick_links.for_subject("os")

        updated = await quick_links.update(created["id"], {"subjectCollections": ["os"], "links": None})

        assert updated["subjectCollections"] == ["os"]
        assert updated["links"] == LINKS
        assert (await quick_links.for_subject("dsa"))["quickLinks"] == []
        assert len((await quick_links.for_subject("os"))["quickLinks"]) == 1

    async def test_delete(self, quick_links):
        created = await quick_links.create("Books", ["dsa"], "books", LINKS, "MinavKaria")
        await quick_links.for_subject("dsa")

        await quick_links.delete(created["id"])

        assert (await quick_links.for_subject("dsa"))["quickLinks"] == []
        with pytest.raises(NotFound):
            await quick_links.delete(created["id"])

    async def test_unknown_id(self, quick_links):
        with pytest.raises(NotFound):
            await quick_links.get("not-an-id")


class TestQuickLinkApi:
    async def test_admin_crud(self, client, super_admin_headers):
        res = await client.post(
            "/api/admin/quick-links",
            json={"templateName": "Books", "subjectCollections": ["dsa"], "linkType": "books", "links": LINKS},
            headers=super_admin_headers,
        )
        assert res.status_code == 201
        quick_link_id = res.json()["quickLink"]["id"]

        public = (await client.get("/api/subject/dsa/quick-links")).json()["quickLinks"]
        assert [q["id"] for q in public] == [quick_link_id]

        res = await client.put(
            f"/api/admin/quick-links/{quick_link_id}",
            json={"templateName": "Textbooks"},
            headers=super_admin_headers,
        )
        assert res.json()["quickLink"]["templateName"] == "Textbooks"
        public = (await client.get("/api/subject/dsa/quick-links")).json()["quickLinks"]
        assert public[0]["templateName"] == "Textbooks"

        res = await client.delete(f"/api/admin/quick-links/{quick_link_id}", headers=super_admin_headers)
        assert res.json() == {"success": True, "message": "Quick link deleted"}
        assert (await client.get("/api/admin/quick-links", headers=super_admin_headers)).json() == {"quickLinks": []}

    async def test_subject_admin_needs_every_subject(self, client, super_admin_headers, auth_headers):
        await client.post(
            "/api/admin/permissions",
            json={"githubUsername": "alice", "allowedSubjects": ["dsa"]},
            headers=super_admin_headers,
        )
        alice = auth_headers("alice")
        body = {"templateName": "Books", "subjectCollections": ["dsa", "os"], "linkType": "books", "links": LINKS}

        res = await client.post("/api/admin/quick-links", json=body, headers=alice)
        assert res.status_code == 403

        body["subjectCollections"] = ["dsa"]
        res = await client.post("/api/admin/quick-links", json=body, headers=alice)
        assert res.status_code == 201

    async def test_invalid_link_type(self, client, super_admin_headers):
        res = await client.post(
            "/api/admin/quick-links",
            json={"templateName": "X", "subjectCollections": ["dsa"], "linkType": "videos", "links": []},
            headers=super_admin_headers,
        )
        assert res.status_code == 422

    async def test_missing_quick_link(self, client, super_admin_headers):
        res = await client.delete("/api/admin/quick-links/0123456789abcdef01234567", headers=super_admin_headers)
        assert res.status_code == 404
