"""Tests for roadmap schema validation."""

from app.generation.validator import validate_roadmap
from app.schemas.generation import GenerationStatus, RoadmapShape


class TestStepsShape:
    def test_rejects_empty_title_and_steps(self):
        """Empty title is reported before empty steps."""
        result = validate_roadmap({"title": "", "steps": []})
        assert result.status == GenerationStatus.SCHEMA_INVALID
        assert result.field == "title"
        assert result.draft is None

    def test_rejects_empty_steps(self):
        result = validate_roadmap({"title": "X", "steps": []})
        assert result.status == GenerationStatus.SCHEMA_INVALID
        assert result.field == "steps"

    def test_rejects_missing_steps(self):
        assert validate_roadmap({"title": "X"}).field == "steps"

    def test_rejects_non_object_root(self):
        assert validate_roadmap(["Learn Y"]).field == "root"

    def test_normalizes_string_steps(self):
        """String steps become items with a label and completed=False."""
        result = validate_roadmap({"title": "X", "steps": ["Learn Y"]})
        assert result.ok
        assert result.draft.title == "X"
        [item] = result.draft.items
        assert item.label == "Learn Y"
        assert item.completed is False
        assert item.order == 1

    def test_forces_completed_false(self):
        result = validate_roadmap(
            {"title": "X", "steps": [{"label": "A", "completed": True}]}
        )
        assert result.draft.items[0].completed is False

    def test_accepts_alternative_label_keys(self):
        result = validate_roadmap(
            {"title": "X", "steps": [{"name": "A"}, {"step": " B "}, {"label": "C"}]}
        )
        assert [i.label for i in result.draft.items] == ["A", "B", "C"]

    def test_names_first_malformed_step(self):
        result = validate_roadmap(
            {"title": "X", "steps": [{"label": "A"}, {"label": "B"}, {"estTime": "2 weeks"}]}
        )
        assert result.status == GenerationStatus.SCHEMA_INVALID
        assert result.field == "steps[2].label"

    def test_rejects_non_object_step(self):
        assert validate_roadmap({"title": "X", "steps": [42]}).field == "steps[0]"

    def test_reads_optional_keys_and_drops_unknown(self):
        result = validate_roadmap(
            {
                "title": "X",
                "extra": "ignored",
                "steps": [
                    {
                        "order": 5,
                        "label": "Learn SQL",
                        "estTime": "2 weeks",
                        "resource": "https://example.com/sql",
                        "difficulty": "hard",
                    }
                ],
            }
        )
        item = result.draft.items[0]
        assert item.order == 5
        assert item.est_time == "2 weeks"
        assert item.link == "https://example.com/sql"
        assert not hasattr(item, "difficulty")

    def test_non_integer_order_falls_back_to_position(self):
        result = validate_roadmap(
            {"title": "X", "steps": [{"label": "A", "order": "first"}, {"label": "B"}]}
        )
        assert [i.order for i in result.draft.items] == [1, 2]


class TestSectionsShape:
    def test_flattens_sections(self):
        result = validate_roadmap(
            {
                "title": "Data Analyst",
                "sections": [
                    {
                        "title": "Basics",
                        "items": [
                            {"label": "SQL", "tooltip": "Query data", "link": "https://example.com"}
                        ],
                    },
                    {"title": "Tools", "items": ["pandas"]},
                ],
            },
            RoadmapShape.SECTIONS,
        )
        assert result.ok
        assert result.draft.type == "role"
        assert [(i.section, i.label, i.order) for i in result.draft.items] == [
            ("Basics", "SQL", 1),
            ("Tools", "pandas", 2),
        ]
        assert result.draft.items[0].tooltip == "Query data"
        assert [s.title for s in result.draft.to_roadmap().sections()] == ["Basics", "Tools"]

    def test_keeps_declared_type(self):
        result = validate_roadmap(
            {
                "title": "Docker",
                "type": "skill",
                "sections": [{"title": "Basics", "items": ["Images"]}],
            },
            RoadmapShape.SECTIONS,
        )
        assert result.draft.type == "skill"

    def test_rejects_section_without_items(self):
        result = validate_roadmap(
            {"title": "X", "sections": [{"title": "Basics", "items": []}]},
            RoadmapShape.SECTIONS,
        )
        assert result.field == "sections[0].items"

    def test_rejects_section_without_title(self):
        result = validate_roadmap(
            {"title": "X", "sections": [{"items": ["A"]}]},
            RoadmapShape.SECTIONS,
        )
        assert result.field == "sections[0].title"


class TestStepListShape:
    def test_accepts_bare_list(self):
        result = validate_roadmap(
            [{"order": 8, "label": "Mentorship", "estTime": "ongoing"}],
            RoadmapShape.STEP_LIST,
        )
        assert result.ok
        assert result.draft is None
        assert result.items[0].order == 8
        assert result.items[0].est_time == "ongoing"

    def test_accepts_steps_wrapper(self):
        result = validate_roadmap({"steps": ["A", "B"]}, RoadmapShape.STEP_LIST)
        assert [i.label for i in result.items] == ["A", "B"]

    def test_rejects_empty_list(self):
        result = validate_roadmap([], RoadmapShape.STEP_LIST)
        assert result.status == GenerationStatus.SCHEMA_INVALID
        assert result.field == "steps"
