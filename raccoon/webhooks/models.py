"""GitLab webhook event models."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator


class EventKind(str, Enum):
    PUSH = "push"
    TAG_PUSH = "tag_push"
    ISSUE = "issue"
    MERGE_REQUEST = "merge_request"
    NOTE = "note"
    WIKI_PAGE = "wiki_page"
    PIPELINE = "pipeline"
    BUILD = "build"


# X-Gitlab-Event header values, used when the payload has no object_kind
HEADER_KINDS: dict[str, EventKind] = {
    "Push Hook": EventKind.PUSH,
    "Tag Push Hook": EventKind.TAG_PUSH,
    "Issue Hook": EventKind.ISSUE,
    "Confidential Issue Hook": EventKind.ISSUE,
    "Merge Request Hook": EventKind.MERGE_REQUEST,
    "Note Hook": EventKind.NOTE,
    "Confidential Note Hook": EventKind.NOTE,
    "Wiki Page Hook": EventKind.WIKI_PAGE,
    "Pipeline Hook": EventKind.PIPELINE,
    "Job Hook": EventKind.BUILD,
    "Build Hook": EventKind.BUILD,
}

BLANK_SHA = "0" * 40


class _Model(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class User(_Model):
    name: str
    username: str = ""


class Repository(_Model):
    name: str
    homepage: str = ""


class Commit(_Model):
    id: str
    message: str = ""
    url: str = ""


class IssueAttributes(_Model):
    iid: int | None = None
    title: str
    url: str
    action: str = "update"


class MergeRequestAttributes(_Model):
    iid: int | None = None
    title: str
    url: str
    action: str = "update"
    source_branch: str = ""
    target_branch: str = ""


class NoteAttributes(_Model):
    noteable_type: str
    url: str
    note: str


class WikiPageAttributes(_Model):
    title: str
    url: str
    action: str = "update"


class PipelineAttributes(_Model):
    id: int
    ref: str = ""
    status: str


class _Event(_Model):
    repository: Repository

    @model_validator(mode="before")
    @classmethod
    def _repository_from_project(cls, data: Any) -> Any:
        # Pipeline and wiki payloads only carry "project"
        if isinstance(data, dict) and "repository" not in data:
            project = data.get("project")
            if isinstance(project, dict) and "name" in project:
                data = {
                    **data,
                    "repository": {
                        "name": project["name"],
                        "homepage": project.get("web_url", project.get("homepage", "")),
                    },
                }
        return data


class PushEvent(_Event):
    kind: Literal["push"] = Field(alias="object_kind")
    user_name: str
    ref: str
    before: str = BLANK_SHA
    after: str = ""
    total_commits_count: int
    commits: tuple[Commit, ...] = ()

    @property
    def branch(self) -> str:
        return self.ref.removeprefix("refs/heads/")

    @property
    def deleted(self) -> bool:
        return self.after == BLANK_SHA


class TagPushEvent(_Event):
    kind: Literal["tag_push"] = Field(alias="object_kind")
    user_name: str
    ref: str
    before: str = BLANK_SHA
    after: str = ""

    @property
    def tag(self) -> str:
        return self.ref.rsplit("/", 1)[-1]

    @property
    def deleted(self) -> bool:
        return self.after == BLANK_SHA


class IssueEvent(_Event):
    kind: Literal["issue"] = Field(alias="object_kind")
    user: User
    issue: IssueAttributes = Field(alias="object_attributes")


class MergeRequestEvent(_Event):
    kind: Literal["merge_request"] = Field(alias="object_kind")
    user: User
    merge_request: MergeRequestAttributes = Field(alias="object_attributes")


class NoteEvent(_Event):
    kind: Literal["note"] = Field(alias="object_kind")
    user: User
    comment: NoteAttributes = Field(alias="object_attributes")


class WikiPageEvent(_Event):
    kind: Literal["wiki_page"] = Field(alias="object_kind")
    user: User
    page: WikiPageAttributes = Field(alias="object_attributes")


class PipelineEvent(_Event):
    kind: Literal["pipeline"] = Field(alias="object_kind")
    user: User | None = None
    pipeline: PipelineAttributes = Field(alias="object_attributes")


class BuildEvent(_Event):
    kind: Literal["build"] = Field(alias="object_kind")
    user: User | None = None
    build_name: str
    build_stage: str = ""
    build_status: str
    ref: str = ""


WebhookEvent = Annotated[
    Union[
        PushEvent,
        TagPushEvent,
        IssueEvent,
        MergeRequestEvent,
        NoteEvent,
        WikiPageEvent,
        PipelineEvent,
        BuildEvent,
    ],
    Field(discriminator="kind"),
]

webhook_event_adapter: TypeAdapter[WebhookEvent] = TypeAdapter(WebhookEvent)
