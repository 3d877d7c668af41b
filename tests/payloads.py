"""Webhook payload builders shared by the provider and endpoint tests."""

from scmhook.schemas.scm import ZERO_ID

WEBHOOK_SECRET = "dev-secret"

BEFORE = "a" * 40
AFTER = "b" * 40


def github_push(ref: str = "refs/heads/main", *, before: str = BEFORE, after: str = AFTER, commits: int = 2) -> dict:
    return {
        "ref": ref,
        "before": before,
        "after": after,
        "created": before == ZERO_ID,
        "deleted": after == ZERO_ID,
        "compare": "https://github.com/acme/widget/compare/aaaa...bbbb",
        "commits": [
            {
                "id": f"{index:040x}",
                "message": f"Change {index}\n\nSigned-off-by: Bob",
                "url": f"https://github.com/acme/widget/commit/{index:040x}",
                "author": {"name": "Bob", "email": "bob@example.com", "username": "bob"},
                "added": [f"src/new{index}.c"],
                "modified": ["src/main.c"],
                "removed": [],
            }
            for index in range(commits)
        ],
        "repository": {
            "name": "widget",
            "url": "https://github.com/acme/widget",
            "html_url": "https://github.com/acme/widget",
            "tags_url": "https://api.github.com/repos/acme/widget/tags",
        },
        "sender": {"login": "bob", "url": "https://api.github.com/users/bob"},
    }


def gitlab_push(ref: str = "refs/heads/main", *, before: str = BEFORE, after: str = AFTER, total: int | None = None) -> dict:
    return {
        "object_kind": "push",
        "ref": ref,
        "before": before,
        "after": after,
        "user_name": "Carol",
        "user_username": "carol",
        "user_email": "carol@example.com",
        "project": {
            "id": 7,
            "name": "widget",
            "web_url": "https://gitlab.example.com/acme/widget",
            "git_http_url": "https://gitlab.example.com/acme/widget.git",
        },
        "commits": [
            {
                "id": "c" * 40,
                "message": "Tweak\n",
                "url": "https://gitlab.example.com/acme/widget/-/commit/cccc",
                "author": {"name": "Carol", "email": "carol@example.com"},
                "added": [],
                "modified": ["README.md"],
                "removed": [],
            }
        ],
        "total_commits_count": total,
    }


def travis_build(**overrides) -> dict:
    payload = {
        "state": "passed",
        "number": "128",
        "branch": "main",
        "duration": 95,
        "build_url": "https://travis-ci.example/acme/widget/builds/1",
        "repository": {"name": "widget", "url": "https://github.com/acme/widget"},
        "committer_name": "Bob",
        "pull_request": False,
    }
    payload.update(overrides)
    return payload
