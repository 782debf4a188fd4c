"""
Serenity Backend — Stress Technique Catalogue Tests
===================================================

What we test:
    ✅ Listing, paging and filtering by category or difficulty
    ✅ Case-insensitive search over name, description and tags
    ✅ LIKE wildcards in a search query match literally
    ✅ Duplicate names raise ConflictError on create and update
    ✅ Preference-based picks: defaults, filters, duration window, ordering
    ✅ 409 and search over HTTP
"""

import uuid

import pytest
import pytest_asyncio

from serenity.exceptions import ConflictError, NotFoundError
from serenity.services.stress_technique_service import escape_like, stress_technique_service

TECHNIQUES = [
    {
        "name": "Box Breathing",
        "description": "Inhale, hold, exhale and hold for four counts each",
        "category": "breathing",
        "duration_minutes": 5,
        "effectiveness_rating": 4.5,
        "tags": ["Focus"],
    },
    {
        "name": "Body Scan",
        "description": "Move attention slowly through the body",
        "category": "meditation",
        "duration_minutes": 15,
        "effectiveness_rating": 4.0,
        "tags": ["sleep"],
    },
    {
        "name": "Silent Retreat",
        "description": "An extended silent sit",
        "category": "meditation",
        "duration_minutes": 30,
        "effectiveness_rating": 5.0,
    },
    {
        "name": "Muscle Release",
        "description": "Tense and release each muscle group at 50% effort",
        "category": "physical",
        "duration_minutes": 10,
        "effectiveness_rating": 4.8,
        "tags": ["tension"],
    },
    {
        "name": "Thought Reframing",
        "description": "Question and replace unhelpful thoughts",
        "category": "cognitive",
        "difficulty": "intermediate",
        "duration_minutes": 10,
        "effectiveness_rating": 3.5,
        "tags": ["anxiety"],
    },
    {
        "name": "Alternate Nostril",
        "description": "Breathe through one nostril at a time",
        "category": "breathing",
        "difficulty": "intermediate",
        "duration_minutes": 8,
        "effectiveness_rating": 4.2,
        "tags": ["balance"],
    },
]


@pytest_asyncio.fixture
async def catalogue(db_session):
    created = {}
    for data in TECHNIQUES:
        technique = await stress_technique_service.create(db_session, dict(data))
        created[technique.name] = technique
    return created


def _names(techniques):
    return [t.name for t in techniques]


class TestBrowsing:
    @pytest.mark.asyncio
    async def test_list_pages_by_name(self, db_session, catalogue):
        first = await stress_technique_service.list(db_session, page=1, limit=2)
        second = await stress_technique_service.list(db_session, page=2, limit=2)
        assert _names(first) == ["Alternate Nostril", "Body Scan"]
        assert _names(second) == ["Box Breathing", "Muscle Release"]

    @pytest.mark.asyncio
    async def test_by_category_and_difficulty(self, db_session, catalogue):
        meditation = await stress_technique_service.by_category(db_session, "meditation")
        intermediate = await stress_technique_service.by_difficulty(db_session, "intermediate")
        assert _names(meditation) == ["Body Scan", "Silent Retreat"]
        assert _names(intermediate) == ["Alternate Nostril", "Thought Reframing"]

    @pytest.mark.asyncio
    async def test_defaults_applied_on_create(self, db_session, catalogue):
        technique = catalogue["Silent Retreat"]
        assert technique.difficulty == "beginner"
        assert technique.tags == []
        assert technique.recommended_frequency == "as-needed"


class TestSearch:
    @pytest.mark.asyncio
    async def test_name_and_description_ignore_case(self, db_session, catalogue):
        assert _names(await stress_technique_service.search(db_session, "BREATH")) == [
            "Alternate Nostril",
            "Box Breathing",
        ]

    @pytest.mark.asyncio
    async def test_tags_ignore_case(self, db_session, catalogue):
        assert _names(await stress_technique_service.search(db_session, "focus")) == ["Box Breathing"]
        assert _names(await stress_technique_service.search(db_session, "SLEEP")) == ["Body Scan"]

    @pytest.mark.asyncio
    async def test_wildcards_match_literally(self, db_session, catalogue):
        assert _names(await stress_technique_service.search(db_session, "%")) == ["Muscle Release"]
        assert await stress_technique_service.search(db_session, "_") == []

    @pytest.mark.asyncio
    async def test_no_match(self, db_session, catalogue):
        assert await stress_technique_service.search(db_session, "yoga") == []

    def test_escape_like(self):
        assert escape_like("50%_off\\") == "50\\%\\_off\\\\"


class TestEditing:
    @pytest.mark.asyncio
    async def test_duplicate_name_on_create(self, db_session, catalogue):
        with pytest.raises(ConflictError) as exc_info:
            await stress_technique_service.create(db_session, dict(TECHNIQUES[0]))
        assert exc_info.value.message == "A technique with this name already exists"

    @pytest.mark.asyncio
    async def test_duplicate_name_on_update(self, db_session, catalogue):
        body_scan = catalogue["Body Scan"]
        with pytest.raises(ConflictError):
            await stress_technique_service.update(db_session, body_scan.id, {"name": "Box Breathing"})

        updated = await stress_technique_service.update(
            db_session, body_scan.id, {"name": "Body Scan", "duration_minutes": 12, "tags": None}
        )
        assert updated.duration_minutes == 12
        assert updated.tags == ["sleep"]

    @pytest.mark.asyncio
    async def test_delete(self, db_session, catalogue):
        technique_id = catalogue["Muscle Release"].id
        await stress_technique_service.delete(db_session, technique_id)
        with pytest.raises(NotFoundError):
            await stress_technique_service.get(db_session, technique_id)

    @pytest.mark.asyncio
    async def test_unknown_technique(self, db_session):
        with pytest.raises(NotFoundError):
            await stress_technique_service.update(db_session, uuid.uuid4(), {"duration_minutes": 5})


class TestRecommendedFor:
    @pytest.mark.asyncio
    async def test_default_preferences(self, db_session, catalogue, user):
        # breathing or meditation, beginner, at most 15 minutes
        picks = await stress_technique_service.recommended_for(db_session, user)
        assert _names(picks) == ["Box Breathing", "Body Scan"]

    @pytest.mark.asyncio
    async def test_partial_preferences_keep_defaults(self, db_session, catalogue, make_user):
        user = await make_user("patient", preferences={"stress_management": {"preferred_duration": 30}})
        picks = await stress_technique_service.recommended_for(db_session, user)
        assert _names(picks) == ["Silent Retreat", "Box Breathing", "Body Scan"]

    @pytest.mark.asyncio
    async def test_category_difficulty_and_duration_filters(self, db_session, catalogue, make_user):
        user = await make_user(
            "thinker",
            preferences={
                "stress_management": {
                    "preferred_categories": ["physical", "cognitive"],
                    "difficulty_level": "intermediate",
                    "preferred_duration": 5,
                }
            },
        )
        picks = await stress_technique_service.recommended_for(db_session, user)
        assert _names(picks) == ["Thought Reframing"]


class TestStressTechniquesApi:
    @pytest.mark.asyncio
    async def test_duplicate_is_409_and_search(self, test_client, register):
        headers, _ = await register("alice")
        body = {
            "name": "Box Breathing",
            "description": "Breathe at 4-4-4-4 for 100% calm",
            "category": "breathing",
            "duration_minutes": 5,
        }
        created = await test_client.post("/api/stress-techniques", json=body, headers=headers)
        assert created.status_code == 201

        duplicate = await test_client.post("/api/stress-techniques", json=body, headers=headers)
        assert duplicate.status_code == 409
        assert duplicate.json()["error"] == "conflict"

        other = dict(body, name="Body Scan", description="Notice each part of the body", category="meditation")
        await test_client.post("/api/stress-techniques", json=other, headers=headers)

        found = await test_client.get("/api/stress-techniques/search", params={"q": "%"}, headers=headers)
        assert found.status_code == 200
        assert [t["name"] for t in found.json()] == ["Box Breathing"]
