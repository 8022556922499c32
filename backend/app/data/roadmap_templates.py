"""Curated career roadmap templates."""

from app.schemas.roadmap import RoadmapTemplate, TrackableItem


def _template(
    template_id: str, title: str, category: str, steps: list[tuple[str, str]]
) -> RoadmapTemplate:
    return RoadmapTemplate(
        id=template_id,
        title=title,
        category=category,
        steps=[
            TrackableItem(order=order, label=label, est_time=est_time)
            for order, (label, est_time) in enumerate(steps, start=1)
        ],
    )


ROADMAP_TEMPLATES: list[RoadmapTemplate] = [
    _template(
        "ai-ml-engineer",
        "AI / ML Engineer",
        "engineering",
        [
            ("Learn Python foundations", "2 weeks"),
            ("Master linear algebra & stats", "3 weeks"),
            ("Finish 'Machine Learning' by Andrew Ng (Coursera)", "4 weeks"),
            ("Build & deploy a small image-classifier project", "2 weeks"),
            ("Study deep-learning (fast.ai or Deeplearning.ai)", "4 weeks"),
            ("Contribute to an open-source ML repo on GitHub", "ongoing"),
            ("Create a portfolio on Hugging Face Spaces", "1 week"),
        ],
    ),
    _template(
        "data-scientist",
        "Data Scientist",
        "data",
        [
            ("Master Python or R programming", "3 weeks"),
            ("Learn statistics & probability theory", "4 weeks"),
            ("Study data manipulation (pandas, dplyr)", "2 weeks"),
            ("Learn data visualization techniques", "2 weeks"),
            ("Study machine learning algorithms", "4 weeks"),
            ("Complete a data science bootcamp or course", "8 weeks"),
            ("Build a portfolio with 3 end-to-end projects", "4 weeks"),
            ("Contribute to a public dataset analysis", "ongoing"),
        ],
    ),
    _template(
        "software-developer",
        "Software Developer",
        "engineering",
        [
            ("Learn a programming language (Python, JavaScript, Java)", "4 weeks"),
            ("Master data structures & algorithms", "6 weeks"),
            ("Learn version control with Git & GitHub", "1 week"),
            ("Study a web framework (React, Django, etc.)", "4 weeks"),
            ("Learn database concepts & SQL", "3 weeks"),
            ("Build a full-stack project from scratch", "4 weeks"),
            ("Learn testing & debugging practices", "2 weeks"),
            ("Contribute to open source projects", "ongoing"),
        ],
    ),
    _template(
        "cybersecurity-analyst",
        "Cybersecurity Analyst",
        "security",
        [
            ("Learn networking fundamentals", "3 weeks"),
            ("Study operating system security", "4 weeks"),
            ("Master security tools & techniques", "5 weeks"),
            ("Learn ethical hacking principles", "4 weeks"),
            ("Get CompTIA Security+ certification", "6 weeks"),
            ("Study incident response procedures", "2 weeks"),
            ("Practice with CTF competitions", "ongoing"),
            ("Build a home security lab", "3 weeks"),
        ],
    ),
    _template(
        "cloud-architect",
        "Cloud Architect",
        "infrastructure",
        [
            ("Learn cloud fundamentals (AWS/Azure/GCP)", "4 weeks"),
            ("Master virtualization & containers", "3 weeks"),
            ("Study networking in cloud environments", "3 weeks"),
            ("Learn infrastructure as code", "4 weeks"),
            ("Get a cloud certification", "8 weeks"),
            ("Study cloud security principles", "3 weeks"),
            ("Build multi-service cloud architecture", "4 weeks"),
            ("Learn cost optimization strategies", "2 weeks"),
        ],
    ),
    _template(
        "devops-engineer",
        "DevOps Engineer",
        "infrastructure",
        [
            ("Learn Linux system administration", "4 weeks"),
            ("Master Git & GitHub workflows", "2 weeks"),
            ("Study containerization with Docker", "3 weeks"),
            ("Learn container orchestration (Kubernetes)", "4 weeks"),
            ("Master CI/CD pipelines", "3 weeks"),
            ("Study Infrastructure as Code (Terraform, Ansible)", "4 weeks"),
            ("Learn monitoring and logging solutions", "2 weeks"),
            ("Implement a complete DevOps pipeline project", "4 weeks"),
        ],
    ),
    _template(
        "full-stack-dev",
        "Full-Stack Developer",
        "engineering",
        [
            ("Master HTML, CSS & JavaScript fundamentals", "4 weeks"),
            ("Learn a frontend framework (React, Vue, Angular)", "6 weeks"),
            ("Study a backend language (Node.js, Python, Ruby)", "5 weeks"),
            ("Learn database concepts & ORM", "3 weeks"),
            ("Master API design & implementation", "3 weeks"),
            ("Study authentication & security", "2 weeks"),
            ("Build a complete full-stack application", "6 weeks"),
            ("Learn deployment & DevOps basics", "3 weeks"),
        ],
    ),
]

_BY_ID = {template.id: template for template in ROADMAP_TEMPLATES}


def get_template(template_id: str) -> RoadmapTemplate | None:
    return _BY_ID.get(template_id)
