"""
Grades leaderboard.

Student records live in the ``data`` collection of the leaderboard database::

    {seat_number, name, admission_year, sgpa_list: [{semester, sgpa}], avg_cgpa}

``avg_cgpa`` may be missing on older records; it is then derived on read from
the SGPA entries and never written back.
"""
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from motor.motor_asyncio import AsyncIOMotorDatabase

from notesaid.database import normalize

COLLECTION = "data"

DEFAULT_ADMISSION_YEAR = 2024
DEFAULT_LIMIT = 50
MAX_LIMIT = 100
SEARCH_DEFAULT_LIMIT = 20
SEARCH_MAX_LIMIT = 50
TOP_DEFAULT_COUNT = 10
TOP_MAX_COUNT = 50

SORT_FIELDS = ("avg_cgpa", "name", "seat_number")

SgpaList = Union[List[Dict[str, Any]], Dict[str, Any], None]


def calculate_avg_cgpa(sgpa_list: SgpaList) -> float:
    """Mean of the positive SGPA entries, rounded to 2 places; 0.0 if there are none."""
    if not sgpa_list:
        return 0.0
    entries = sgpa_list if isinstance(sgpa_list, list) else [sgpa_list]
    valid = []
    for entry in entries:
        sgpa = (entry or {}).get("sgpa")
        if isinstance(sgpa, (int, float)) and not isinstance(sgpa, bool) and sgpa > 0:
            valid.append(sgpa)
    if not valid:
        return 0.0
    return round(sum(valid) / len(valid), 2)


def with_avg_cgpa(record: Dict[str, Any]) -> Dict[str, Any]:
    record = normalize(record)
    if record.get("avg_cgpa") is None:
        record["avg_cgpa"] = calculate_avg_cgpa(record.get("sgpa_list"))
    return record


def calculate_tied_ranks(records: List[Dict[str, Any]], field: str, offset: int = 0) -> List[Dict[str, Any]]:
    """Attach competition ranks (1, 1, 3, ...) to records already sorted by ``field``."""
    ranked = []
    rank = offset
    previous = None
    for position, record in enumerate(records):
        score = record.get(field) or 0
        if position == 0 or score != previous:
            rank = offset + position + 1
        ranked.append({**record, "rank": rank})
        previous = score
    return ranked


def paginate(page: int, limit: int, total: int) -> Dict[str, Any]:
    skip = (page - 1) * limit
    return {
        "current_page": page,
        "per_page": limit,
        "total_records": total,
        "total_pages": math.ceil(total / limit) if limit else 0,
        "has_next": skip + limit < total,
        "has_prev": page > 1,
    }


def _int(value: Any, default: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed or default


def _float(value: Any) -> Optional[float]:
    if value in (None, ""):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _cgpa_range(params: Mapping[str, Any], low: str, high: str) -> Optional[Dict[str, float]]:
    bounds = {}
    for name, op in ((low, "$gte"), (high, "$lte")):
        value = _float(params.get(name))
        if value is not None:
            bounds[op] = value
    return bounds or None


def _contains(text: str) -> Dict[str, str]:
    return {"$regex": re.escape(text), "$options": "i"}


@dataclass
class LeaderboardQuery:
    admission_year: int = DEFAULT_ADMISSION_YEAR
    name: Optional[str] = None
    seat_number: Optional[str] = None
    min_cgpa: Optional[float] = None
    max_cgpa: Optional[float] = None
    page: int = 1
    limit: int = DEFAULT_LIMIT
    sort_by: str = "avg_cgpa"
    sort_order: str = "desc"

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "LeaderboardQuery":
        sort_by = params.get("sort_by") or "avg_cgpa"
        sort_order = "asc" if params.get("sort_order") == "asc" else "desc"
        if sort_by not in SORT_FIELDS:
            sort_by, sort_order = "avg_cgpa", "desc"
        return cls(
            admission_year=_int(params.get("admission_year"), DEFAULT_ADMISSION_YEAR),
            name=params.get("name") or None,
            seat_number=params.get("seat_number") or None,
            min_cgpa=_float(params.get("min_cgpa")),
            max_cgpa=_float(params.get("max_cgpa")),
            page=max(_int(params.get("page"), 1), 1),
            limit=min(max(_int(params.get("limit"), DEFAULT_LIMIT), 1), MAX_LIMIT),
            sort_by=sort_by,
            sort_order=sort_order,
        )

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def build_filter(self) -> Dict[str, Any]:
        query: Dict[str, Any] = {"admission_year": self.admission_year}
        if self.name:
            query["name"] = _contains(self.name)
        if self.seat_number:
            query["seat_number"] = self.seat_number
        cgpa = {}
        if self.min_cgpa is not None:
            cgpa["$gte"] = self.min_cgpa
        if self.max_cgpa is not None:
            cgpa["$lte"] = self.max_cgpa
        if cgpa:
            query["avg_cgpa"] = cgpa
        return query

    def sort_spec(self) -> List[Tuple[str, int]]:
        direction = 1 if self.sort_order == "asc" else -1
        spec = [(self.sort_by, direction)]
        if self.sort_by != "seat_number":
            spec.append(("seat_number", 1))
        return spec


class LeaderboardService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db[COLLECTION]

    async def ranked(self, query: LeaderboardQuery) -> Dict[str, Any]:
        filter_q = query.build_filter()
        cursor = self.collection.find(filter_q).sort(query.sort_spec()).skip(query.skip).limit(query.limit)
        data = [with_avg_cgpa(doc) async for doc in cursor]
        total = await self.collection.count_documents(filter_q)
        return {
            "data": data,
            "pagination": paginate(query.page, query.limit, total),
            "filters": {
                "admission_year": query.admission_year,
                "sort_by": query.sort_by,
                "sort_order": query.sort_order,
            },
        }

    async def top(self, admission_year: int = DEFAULT_ADMISSION_YEAR, count: int = TOP_DEFAULT_COUNT) -> Dict[str, Any]:
        count = min(max(count, 1), TOP_MAX_COUNT)
        cursor = (
            self.collection.find({"admission_year": admission_year})
            .sort([("avg_cgpa", -1), ("seat_number", 1)])
            .limit(count)
        )
        data = [with_avg_cgpa(doc) async for doc in cursor]
        return {
            "data": calculate_tied_ranks(data, "avg_cgpa"),
            "metadata": {
                "admission_year": admission_year,
                "top_count": count,
                "type": "top_cgpa_performers",
            },
        }

    async def semester(
        self,
        semester: int,
        admission_year: int = DEFAULT_ADMISSION_YEAR,
        page: int = 1,
        limit: int = DEFAULT_LIMIT,
    ) -> Dict[str, Any]:
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_LIMIT)
        skip = (page - 1) * limit
        match = [
            {"$match": {"admission_year": admission_year}},
            {"$unwind": "$sgpa_list"},
            {"$match": {"sgpa_list.semester": semester, "sgpa_list.sgpa": {"$gt": 0}}},
        ]
        pipeline = match + [
            {"$addFields": {"semester_sgpa": "$sgpa_list.sgpa", "semester_number": semester}},
            {"$sort": {"semester_sgpa": -1, "seat_number": 1}},
            {"$skip": skip},
            {"$limit": limit},
        ]
        data = [normalize(doc) async for doc in self.collection.aggregate(pipeline)]
        counted = [doc async for doc in self.collection.aggregate(match + [{"$count": "total"}])]
        total = counted[0]["total"] if counted else 0
        return {
            "data": calculate_tied_ranks(data, "semester_sgpa", skip),
            "pagination": paginate(page, limit, total),
            "metadata": {
                "admission_year": admission_year,
                "semester": semester,
                "type": "semester_wise_ranking",
            },
        }

    async def search(self, params: Mapping[str, Any]) -> Dict[str, Any]:
        admission_year = _int(params.get("admission_year"), DEFAULT_ADMISSION_YEAR)
        filter_q: Dict[str, Any] = {"admission_year": admission_year}

        text = params.get("q")
        if text:
            filter_q["$or"] = [{"name": _contains(text)}, {"seat_number": _contains(text)}]
        if params.get("name"):
            filter_q["name"] = _contains(params["name"])
        cgpa = _cgpa_range(params, "min_cgpa", "max_cgpa")
        if cgpa:
            filter_q["avg_cgpa"] = cgpa
        semester_sgpa = _cgpa_range(params, "semester_sgpa_min", "semester_sgpa_max")
        if semester_sgpa:
            filter_q["sgpa_list.sgpa"] = semester_sgpa

        page = max(_int(params.get("page"), 1), 1)
        limit = min(max(_int(params.get("limit"), SEARCH_DEFAULT_LIMIT), 1), SEARCH_MAX_LIMIT)
        sort_by = params.get("sort_by")
        sort = [("avg_cgpa", -1)]
        if sort_by in SORT_FIELDS:
            sort = [(sort_by, 1 if params.get("sort_order") == "asc" else -1)]
        if sort[0][0] != "seat_number":
            sort.append(("seat_number", 1))

        cursor = self.collection.find(filter_q).sort(sort).skip((page - 1) * limit).limit(limit)
        data = [with_avg_cgpa(doc) async for doc in cursor]
        total = await self.collection.count_documents(filter_q)
        return {
            "data": data,
            "pagination": paginate(page, limit, total),
            "search_params": {
                "query": text,
                "admission_year": admission_year,
                "applied_filters": [key for key in filter_q if key != "admission_year"],
            },
        }
