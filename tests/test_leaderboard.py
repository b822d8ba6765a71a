import pytest

from notesaid.leaderboard import (
    COLLECTION,
    LeaderboardQuery,
    calculate_avg_cgpa,
    calculate_tied_ranks,
    paginate,
)


def student(seat, name, sgpas, year=2024, avg=None):
    doc = {
        "seat_number": seat,
        "name": name,
        "admission_year": year,
        "sgpa_list": [{"semester": i + 1, "sgpa": s} for i, s in enumerate(sgpas)],
    }
    if avg is not None:
        doc["avg_cgpa"] = avg
    return doc


@pytest.fixture
async def students(leaderboard_db):
    docs = [
        student("S01", "Asha Rao", [9.0, 9.0], avg=9.0),
        student("S02", "Bilal Khan", [8.0, 8.0], avg=8.0),
        student("S03", "Chitra Iyer", [9.0, 9.0], avg=9.0),
        student("S04", "Dev Shah", [7.0, 0], avg=7.0),
        student("S05", "Esha Patel", [8.5, 8.5], avg=8.5),
        student("S06", "old record", [10.0], year=2023, avg=10.0),
    ]
    await leaderboard_db[COLLECTION].insert_many(docs)
    return docs


class TestAvgCgpa:
    def test_ignores_zero_entries(self):
        assert calculate_avg_cgpa([{"sgpa": 8.5}, {"sgpa": 0}, {"sgpa": 9.0}]) == 8.75

    def test_no_valid_entries_is_zero(self):
        assert calculate_avg_cgpa([]) == 0.0
        assert calculate_avg_cgpa(None) == 0.0
        assert calculate_avg_cgpa([{"sgpa": 0}, {"sgpa": None}]) == 0.0

    def test_single_dict_entry(self):
        assert calculate_avg_cgpa({"semester": 1, "sgpa": 7.25}) == 7.25

    def test_rounds_to_two_places(self):
        assert calculate_avg_cgpa([{"sgpa": 8.0}, {"sgpa": 8.0}, {"sgpa": 9.0}]) == 8.33


class TestRanking:
    def test_competition_ranks(self):
        ranked = calculate_tied_ranks([{"s": 9}, {"s": 9}, {"s": 8}, {"s": 7}, {"s": 7}], "s")
        assert [r["rank"] for r in ranked] == [1, 1, 3, 4, 4]

    def test_offset(self):
        ranked = calculate_tied_ranks([{"s": 9}, {"s": 8}], "s", offset=10)
        assert [r["rank"] for r in ranked] == [11, 12]

    def test_paginate(self):
        assert paginate(2, 10, 25) == {
            "current_page": 2,
            "per_page": 10,
            "total_records": 25,
            "total_pages": 3,
            "has_next": True,
            "has_prev": True,
        }
        assert paginate(3, 10, 25)["has_next"] is False


class TestQuery:
    def test_defaults(self):
        q = LeaderboardQuery.from_params({})
        assert (q.admission_year, q.page, q.limit, q.sort_by, q.sort_order) == (2024, 1, 50, "avg_cgpa", "desc")

    def test_limit_is_capped(self):
        assert LeaderboardQuery.from_params({"limit": "500"}).limit == 100

    def test_unknown_sort_falls_back(self):
        q = LeaderboardQuery.from_params({"sort_by": "password", "sort_order": "asc"})
        assert (q.sort_by, q.sort_order) == ("avg_cgpa", "desc")

    def test_filter_escapes_name(self):
        q = LeaderboardQuery.from_params({"name": "a.b", "min_cgpa": "8", "max_cgpa": "9.5"})
        query = q.build_filter()
        assert query["name"] == {"$regex": r"a\.b", "$options": "i"}
        assert query["avg_cgpa"] == {"$gte": 8.0, "$lte": 9.5}

    def test_sort_has_seat_tiebreak(self):
        assert LeaderboardQuery.from_params({}).sort_spec() == [("avg_cgpa", -1), ("seat_number", 1)]
        assert LeaderboardQuery.from_params({"sort_by": "seat_number"}).sort_spec() == [("seat_number", -1)]


class TestLeaderboardApi:
    async def test_pages_are_disjoint_and_sorted(self, client, students):
        first = (await client.get("/api/leaderboard?limit=2&page=1")).json()
        second = (await client.get("/api/leaderboard?limit=2&page=2")).json()
        third = (await client.get("/api/leaderboard?limit=2&page=3")).json()

        seats = [r["seat_number"] for page in (first, second, third) for r in page["data"]]
        assert seats == ["S01", "S03", "S05", "S02", "S04"]
        assert len(set(seats)) == len(seats)

        cgpas = [r["avg_cgpa"] for page in (first, second, third) for r in page["data"]]
        assert cgpas == sorted(cgpas, reverse=True)
        assert first["pagination"]["total_records"] == 5
        assert first["pagination"]["has_next"] is True
        assert third["pagination"]["has_next"] is False

    async def test_ranked_view_is_cached(self, client, students, leaderboard_db):
        first = (await client.get("/api/leaderboard")).json()
        await leaderboard_db[COLLECTION].insert_one(student("S99", "Late", [10.0], avg=10.0))
        second = (await client.get("/api/leaderboard")).json()
        assert first == second

    async def test_missing_avg_is_derived(self, client, leaderboard_db):
        await leaderboard_db[COLLECTION].insert_one(student("S10", "No Avg", [8.5, 0, 9.0]))
        data = (await client.get("/api/leaderboard/search?q=S10")).json()["data"]
        assert data[0]["avg_cgpa"] == 8.75

    async def test_top_with_ties(self, client, students):
        res = (await client.get("/api/leaderboard/top?count=3")).json()
        assert [(r["seat_number"], r["rank"]) for r in res["data"]] == [("S01", 1), ("S03", 1), ("S05", 3)]
        assert res["metadata"]["top_count"] == 3

    async def test_semester_ranking(self, client, students):
        res = (await client.get("/api/leaderboard/semester?semester=2")).json()
        seats = [r["seat_number"] for r in res["data"]]
        # S04 has a zero SGPA in semester 2
        assert seats == ["S01", "S03", "S05", "S02"]
        assert [r["rank"] for r in res["data"]] == [1, 1, 3, 4]
        assert res["pagination"]["total_records"] == 4

    async def test_semester_is_required(self, client):
        res = await client.get("/api/leaderboard/semester")
        assert res.status_code == 400

    async def test_search_by_name_fragment(self, client, students):
        res = (await client.get("/api/leaderboard/search?q=khan")).json()
        assert [r["seat_number"] for r in res["data"]] == ["S02"]
        assert res["search_params"]["applied_filters"] == ["$or"]

    async def test_admission_year_filter(self, client, students):
        res = (await client.get("/api/leaderboard?admission_year=2023")).json()
        assert [r["seat_number"] for r in res["data"]] == ["S06"]
