"""Prompt templates for roadmap generation.

Each builder returns a ``GenerationRequest`` pairing the filled prompt with
the response shape the template asks for.
"""

import json

from app.schemas.generation import GenerationRequest, RoadmapFormData, RoadmapShape, UserProfile
from app.schemas.roadmap import Roadmap

CUSTOM_ROADMAP_PROMPT = """
Create a personalized career roadmap for a user with the following profile:
- Status: {status}
- Educational Institution: {institution}
- Education Level: {education_level}
- Skills: {skills}
- Dream Roles: {dream_roles}
- Preferred Industries: {industries}
- Weekly Hours for Learning: {weekly_hours}
- Preferred Learning Style: {learning_style}

Create a step-by-step roadmap with the following structure:
1. Choose a specific career title based on their dream roles and industry preferences
2. Provide 8-12 sequential steps to reach their goal
3. Each step should have a label, estimated time to complete, and an optional resource link

Format the response as a valid JSON object with this exact structure:
{{
  "title": "Career Title",
  "steps": [
    {{
      "order": 1,
      "label": "Step description",
      "estTime": "Estimated time (e.g., 2 weeks)",
      "resource": "Optional URL to a learning resource"
    }}
  ]
}}

Make the roadmap realistic, practical, and tailored to their current status and skills.
"""

SECTIONED_SYSTEM_PROMPT = """
You are a career roadmap expert. Your task is to generate a detailed roadmap for a specific role or skill.
Structure the roadmap with clear sections (like basics, tools, projects, advanced) and list key skills.
Each item should include a helpful tooltip and a resource link.
Output ONLY properly formatted JSON with the following structure:
{
  "title": "Title of the Roadmap",
  "type": "role" or "skill",
  "sections": [
    {
      "title": "Section Name",
      "items": [
        {
          "label": "Name of skill or tool",
          "tooltip": "Short description or tip",
          "link": "URL to helpful resource"
        }
      ]
    }
  ]
}
"""

PERSONALIZE_PROMPT = """
I have a career roadmap for {title} with the following steps:
{steps}

Here is my profile:
{profile}

Based on my profile, please provide 2-3 additional steps that would be valuable for my specific situation.
Format the response as a JSON array of steps with this structure:
[
  {{ "order": number, "label": "step description", "estTime": "time estimate" }}
]

Only include the JSON array in your response, nothing else.
"""


def _join(values: list[str]) -> str:
    return ", ".join(v for v in values if v)


def build_custom_prompt(profile: UserProfile) -> GenerationRequest:
    prompt = CUSTOM_ROADMAP_PROMPT.format(
        status=profile.status,
        institution=profile.institution,
        education_level=profile.education_level,
        skills=_join(profile.skills),
        dream_roles=_join(profile.dream_roles),
        industries=_join(profile.industries),
        weekly_hours=profile.weekly_hours,
        learning_style=profile.learning_style,
    )
    return GenerationRequest(prompt=prompt, shape=RoadmapShape.STEPS)


def build_section_prompt(form: RoadmapFormData) -> GenerationRequest:
    lines = [
        SECTIONED_SYSTEM_PROMPT.strip(),
        "",
        f"Generate a structured roadmap for a {form.role} role for a {form.student_type}.",
    ]
    if form.student_type == "student":
        if form.college_tier:
            lines.append(f"College tier: {form.college_tier}")
        if form.degree:
            lines.append(f"Degree: {form.degree}")
    if form.known_skills:
        lines.append(f"Known skills: {form.known_skills}")
    lines.append(f"Learning preference: {form.learning_preference}")
    lines.append("")
    lines.append(
        "Create a comprehensive step-by-step roadmap with at least 4 sections "
        "(Basics, Tools, Projects, Advanced) and at least 5 items per section."
    )
    lines.append("Provide helpful tooltips and relevant resource links for each item.")
    return GenerationRequest(prompt="\n".join(lines), shape=RoadmapShape.SECTIONS)


def build_personalize_prompt(roadmap: Roadmap, profile: UserProfile) -> GenerationRequest:
    steps = "\n".join(
        f"{s.order}. {s.label}" + (f" ({s.est_time})" if s.est_time else "")
        for s in roadmap.steps
    )
    prompt = PERSONALIZE_PROMPT.format(
        title=roadmap.title,
        steps=steps,
        profile=json.dumps(profile.model_dump(), indent=2),
    )
    return GenerationRequest(prompt=prompt, shape=RoadmapShape.STEP_LIST)
