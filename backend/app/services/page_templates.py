from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import asdict, dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

TemplateFieldType = Literal["string", "string[]", "object[]"]


class UnknownTemplateError(ValueError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown template: {name}")
        self.name = name


@dataclass(frozen=True)
class TemplateField:
    name: str
    description: str
    required: bool
    type: TemplateFieldType


class _TemplateData(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


class BlogSection(_TemplateData):
    heading: str
    content: str


class BlogPostData(_TemplateData):
    intro: str
    sections: list[BlogSection]
    conclusion: str | None = None


class ApiReferenceEntry(_TemplateData):
    name: str
    description: str


class DocumentationData(_TemplateData):
    overview: str
    installation: str | None = None
    usage: str | None = None
    api_reference: list[ApiReferenceEntry] = Field(default_factory=list)


class ArticleData(_TemplateData):
    subtitle: str | None = None
    body: list[str]


class ChangelogData(_TemplateData):
    version: str
    date: str
    added: list[str] = Field(default_factory=list)
    changed: list[str] = Field(default_factory=list)
    fixed: list[str] = Field(default_factory=list)


class TutorialStep(_TemplateData):
    title: str
    content: str


class TutorialData(_TemplateData):
    description: str
    prerequisites: list[str] = Field(default_factory=list)
    steps: list[TutorialStep]
    conclusion: str | None = None


@dataclass(frozen=True)
class PageTemplate:
    name: str
    description: str
    fields: tuple[TemplateField, ...]
    data_model: type[_TemplateData]
    render: Callable[[Any], str]

    def generate(self, data: Mapping[str, Any]) -> str:
        return self.render(self.data_model.model_validate(dict(data)))

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "fields": [asdict(template_field) for template_field in self.fields],
        }


def _render_blog_post(data: BlogPostData) -> str:
    html = f"<p>{data.intro}</p>"
    for section in data.sections:
        html += f"<h3>{section.heading}</h3><p>{section.content}</p>"
    if data.conclusion:
        html += f"<h4>Conclusion</h4><p>{data.conclusion}</p>"
    return html


def _render_documentation(data: DocumentationData) -> str:
    html = f"<h3>Overview</h3><p>{data.overview}</p>"
    if data.installation:
        html += f"<h3>Installation</h3><pre>{data.installation}</pre>"
    if data.usage:
        html += f"<h3>Usage</h3><pre>{data.usage}</pre>"
    if data.api_reference:
        html += "<h3>API Reference</h3>"
        for entry in data.api_reference:
            html += f"<h4>{entry.name}</h4><p>{entry.description}</p>"
    return html


def _render_article(data: ArticleData) -> str:
    html = f"<aside>{data.subtitle}</aside>" if data.subtitle else ""
    return html + "".join(f"<p>{paragraph}</p>" for paragraph in data.body)


def _render_changelog(data: ChangelogData) -> str:
    html = f"<h3>Version {data.version} - {data.date}</h3>"
    for heading, items in (("Added", data.added), ("Changed", data.changed), ("Fixed", data.fixed)):
        if items:
            html += f"<h4>{heading}</h4>{_bullet_list(items)}"
    return html


def _render_tutorial(data: TutorialData) -> str:
    html = f"<p>{data.description}</p>"
    if data.prerequisites:
        html += f"<h3>Prerequisites</h3>{_bullet_list(data.prerequisites)}"
    steps = "".join(f"<li><b>{step.title}</b><p>{step.content}</p></li>" for step in data.steps)
    html += f"<h3>Steps</h3><ol>{steps}</ol>"
    if data.conclusion:
        html += f"<h3>Conclusion</h3><p>{data.conclusion}</p>"
    return html


def _bullet_list(items: list[str]) -> str:
    return "<ul>" + "".join(f"<li>{item}</li>" for item in items) + "</ul>"


# Page titles come from the tool call itself, so no template lists a title field.
TEMPLATES: dict[str, PageTemplate] = {
    template.name: template
    for template in (
        PageTemplate(
            name="blog_post",
            description="A blog post with introduction, body sections, and conclusion",
            fields=(
                TemplateField("intro", "Introduction paragraph", True, "string"),
                TemplateField("sections", "Array of {heading, content} objects", True, "object[]"),
                TemplateField("conclusion", "Conclusion paragraph", False, "string"),
            ),
            data_model=BlogPostData,
            render=_render_blog_post,
        ),
        PageTemplate(
            name="documentation",
            description="Technical documentation with overview, installation, usage, and API reference",
            fields=(
                TemplateField("overview", "Project overview", True, "string"),
                TemplateField("installation", "Installation instructions", False, "string"),
                TemplateField("usage", "Usage examples", False, "string"),
                TemplateField(
                    "api_reference",
                    "Array of {name, description} objects",
                    False,
                    "object[]",
                ),
            ),
            data_model=DocumentationData,
            render=_render_documentation,
        ),
        PageTemplate(
            name="article",
            description="News article with subtitle and body",
            fields=(
                TemplateField("subtitle", "Article subtitle", False, "string"),
                TemplateField("body", "Article body paragraphs", True, "string[]"),
            ),
            data_model=ArticleData,
            render=_render_article,
        ),
        PageTemplate(
            name="changelog",
            description="Software changelog with version, date, and categorized changes",
            fields=(
                TemplateField("version", "Version number", True, "string"),
                TemplateField("date", "Release date", True, "string"),
                TemplateField("added", "New features", False, "string[]"),
                TemplateField("changed", "Changes", False, "string[]"),
                TemplateField("fixed", "Bug fixes", False, "string[]"),
            ),
            data_model=ChangelogData,
            render=_render_changelog,
        ),
        PageTemplate(
            name="tutorial",
            description="Step-by-step tutorial with prerequisites and numbered steps",
            fields=(
                TemplateField("description", "Brief description", True, "string"),
                TemplateField("prerequisites", "Prerequisites list", False, "string[]"),
                TemplateField("steps", "Array of {title, content} objects", True, "object[]"),
                TemplateField("conclusion", "Conclusion", False, "string"),
            ),
            data_model=TutorialData,
            render=_render_tutorial,
        ),
    )
}


def list_templates() -> list[dict[str, Any]]:
    return [template.describe() for template in TEMPLATES.values()]


def render_template(name: str, data: Mapping[str, Any]) -> str:
    template = TEMPLATES.get(name)
    if template is None:
        raise UnknownTemplateError(name)
    return template.generate(data)
