"""Trimmed GitLab webhook payloads."""

import copy

REPOSITORY = {
    "name": "raccoon",
    "url": "git@gitlab.example.com:team/raccoon.git",
    "description": "",
    "homepage": "https://gitlab.example.com/team/raccoon",
}

PROJECT = {
    "id": 15,
    "name": "raccoon",
    "web_url": "https://gitlab.example.com/team/raccoon",
    "path_with_namespace": "team/raccoon",
}

USER = {"id": 1, "name": "Jane Doe", "username": "jdoe"}

PUSH = {
    "object_kind": "push",
    "event_name": "push",
    "before": "95790bf891e76fee5e1747ab589903a6a1f80f22",
    "after": "da1560886d4f094c3e6c9ef40349f7d38b5d27d7",
    "ref": "refs/heads/main",
    "user_name": "Jane Doe",
    "user_username": "jdoe",
    "project": PROJECT,
    "repository": REPOSITORY,
    "commits": [
        {
            "id": "b6568db1bc1dcd7f8b4d5a946b0b91f9dacd7327",
            "message": "Update Catalan translation to e38cb41.\n\nLonger body here.",
            "url": "https://gitlab.example.com/team/raccoon/-/commit/b6568db1",
        },
        {
            "id": "da1560886d4f094c3e6c9ef40349f7d38b5d27d7",
            "message": "fixed readme",
            "url": "https://gitlab.example.com/team/raccoon/-/commit/da156088",
        },
    ],
    "total_commits_count": 2,
}

TAG_PUSH = {
    "object_kind": "tag_push",
    "before": "0000000000000000000000000000000000000000",
    "after": "82b3d5ae55f7080f1e6022629cdb57bfae7cccc7",
    "ref": "refs/tags/v1.0.0",
    "user_name": "John Smith",
    "project": PROJECT,
    "repository": REPOSITORY,
    "commits": [],
    "total_commits_count": 0,
}

ISSUE = {
    "object_kind": "issue",
    "user": USER,
    "project": PROJECT,
    "repository": REPOSITORY,
    "object_attributes": {
        "id": 301,
        "iid": 23,
        "title": "New API: create/update/delete file",
        "state": "opened",
        "url": "https://gitlab.example.com/team/raccoon/-/issues/23",
        "action": "open",
    },
}

MERGE_REQUEST = {
    "object_kind": "merge_request",
    "user": USER,
    "project": PROJECT,
    "repository": REPOSITORY,
    "object_attributes": {
        "id": 99,
        "iid": 1,
        "title": "MS-Viewport",
        "source_branch": "ms-viewport",
        "target_branch": "main",
        "state": "opened",
        "url": "https://gitlab.example.com/team/raccoon/-/merge_requests/1",
        "action": "open",
    },
}

NOTE_COMMIT = {
    "object_kind": "note",
    "user": USER,
    "project": PROJECT,
    "repository": REPOSITORY,
    "object_attributes": {
        "id": 1243,
        "note": "This is a commit comment. How does this work?",
        "noteable_type": "Commit",
        "url": "https://gitlab.example.com/team/raccoon/-/commit/cfe32cf6#note_1243",
    },
}

NOTE_MERGE_REQUEST = {
    "object_kind": "note",
    "user": USER,
    "project": PROJECT,
    "repository": REPOSITORY,
    "object_attributes": {
        "id": 1244,
        "note": "This MR needs work.",
        "noteable_type": "MergeRequest",
        "url": "https://gitlab.example.com/team/raccoon/-/merge_requests/1#note_1244",
    },
}

NOTE_SNIPPET = {
    "object_kind": "note",
    "user": USER,
    "project": PROJECT,
    "repository": REPOSITORY,
    "object_attributes": {
        "id": 1245,
        "note": "Is this snippet doing what it's supposed to be doing? I am not sure.",
        "noteable_type": "Snippet",
        "url": "https://gitlab.example.com/team/raccoon/-/snippets/53#note_1245",
    },
}

WIKI_PAGE = {
    "object_kind": "wiki_page",
    "user": USER,
    "project": PROJECT,
    "wiki": {"web_url": "https://gitlab.example.com/team/raccoon/-/wikis/home"},
    "object_attributes": {
        "title": "Awesome",
        "content": "awesome content goes here",
        "url": "https://gitlab.example.com/team/raccoon/-/wikis/awesome",
        "action": "create",
    },
}

PIPELINE = {
    "object_kind": "pipeline",
    "object_attributes": {
        "id": 31,
        "ref": "main",
        "tag": False,
        "status": "success",
        "stages": ["build", "test", "deploy"],
    },
    "user": USER,
    "project": PROJECT,
}

BUILD = {
    "object_kind": "build",
    "ref": "gitlab-script-trigger",
    "tag": False,
    "build_id": 1977,
    "build_name": "test",
    "build_stage": "test",
    "build_status": "created",
    "project_id": 380,
    "project_name": "team / raccoon",
    "user": USER,
    "repository": REPOSITORY,
}

RELEASE = {
    "object_kind": "release",
    "name": "v1.1",
    "project": PROJECT,
}

ALL_SUPPORTED = {
    "push": PUSH,
    "tag_push": TAG_PUSH,
    "issue": ISSUE,
    "merge_request": MERGE_REQUEST,
    "note_commit": NOTE_COMMIT,
    "note_merge_request": NOTE_MERGE_REQUEST,
    "note_snippet": NOTE_SNIPPET,
    "wiki_page": WIKI_PAGE,
    "pipeline": PIPELINE,
    "build": BUILD,
}


def payload(name: str, **overrides):
    """Deep copy of a fixture with top-level keys replaced."""
    source = RELEASE if name == "release" else ALL_SUPPORTED[name]
    data = copy.deepcopy(source)
    data.update(overrides)
    return data
