"""Pydantic models for GitHub, GitLab and Travis CI webhook payloads.

Only the fields the normalizers read are declared; everything else in the
payload is ignored. A payload missing a required field fails validation and
the request is rejected as malformed.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Provider(str, Enum):
    """Webhook senders recognized by the server."""

    GITHUB = "github"
    GITLAB = "gitlab"
    TRAVIS = "travis"


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class FileChanges(_Payload):
    """File lists attached to a commit by GitHub and GitLab push payloads."""

    added: list[str] = Field(default_factory=list)
    modified: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)

    @property
    def paths(self) -> list[str]:
        return [*self.added, *self.modified, *self.removed]


# -- GitHub ------------------------------------------------------------------


class GitHubUser(_Payload):
    """A GitHub account as embedded in payloads or returned by the users API."""

    login: str
    name: str | None = None
    email: str | None = None
    url: str | None = None


class GitHubCommitAuthor(_Payload):
    name: str
    email: str | None = None
    username: str | None = None


class GitHubCommit(FileChanges):
    """A single commit within a GitHub push event."""

    id: str
    message: str
    url: str | None = None
    author: GitHubCommitAuthor


class GitHubRepository(_Payload):
    """Repository metadata from a GitHub payload."""

    name: str
    url: str | None = None
    html_url: str | None = None
    tags_url: str | None = None

    @property
    def web_url(self) -> str | None:
        return self.html_url or self.url


class GitHubPushPayload(_Payload):
    """GitHub push webhook event payload.

    Reference: https://docs.github.com/en/webhooks/webhook-events-and-payloads#push
    """

    ref: str
    before: str
    after: str
    created: bool = False
    deleted: bool = False
    compare: str | None = None
    commits: list[GitHubCommit] = Field(default_factory=list)
    repository: GitHubRepository
    sender: GitHubUser


class GitHubLabel(_Payload):
    name: str


class GitHubIssue(_Payload):
    number: int
    title: str
    html_url: str | None = None
    user: GitHubUser
    labels: list[GitHubLabel] = Field(default_factory=list)


class GitHubIssuesPayload(_Payload):
    """GitHub ``issues`` event payload."""

    action: str
    issue: GitHubIssue
    repository: GitHubRepository
    sender: GitHubUser


class GitHubBranchRef(_Payload):
    ref: str


class GitHubPullRequest(GitHubIssue):
    merged: bool = False
    base: GitHubBranchRef


class GitHubPullRequestPayload(_Payload):
    """GitHub ``pull_request`` event payload."""

    action: str
    pull_request: GitHubPullRequest
    repository: GitHubRepository
    sender: GitHubUser


# -- GitLab ------------------------------------------------------------------


class GitLabProject(_Payload):
    id: int | None = None
    name: str
    web_url: str
    git_http_url: str | None = None


class GitLabCommitAuthor(_Payload):
    name: str
    email: str | None = None


class GitLabCommit(FileChanges):
    id: str
    message: str
    url: str | None = None
    author: GitLabCommitAuthor


class GitLabPushPayload(_Payload):
    """GitLab ``Push Hook`` and ``Tag Push Hook`` payload."""

    ref: str
    before: str
    after: str
    user_name: str | None = None
    user_username: str | None = None
    user_email: str | None = None
    project: GitLabProject
    commits: list[GitLabCommit] = Field(default_factory=list)
    total_commits_count: int | None = None


class GitLabUser(_Payload):
    name: str | None = None
    username: str
    email: str | None = None


class GitLabLabel(_Payload):
    title: str


class GitLabObjectAttributes(_Payload):
    """``object_attributes`` of issue and merge request hooks."""

    iid: int
    title: str
    url: str | None = None
    action: str | None = None
    target_branch: str | None = None


class GitLabIssuePayload(_Payload):
    """GitLab ``Issue Hook`` and ``Merge Request Hook`` payload."""

    user: GitLabUser
    project: GitLabProject
    object_attributes: GitLabObjectAttributes
    labels: list[GitLabLabel] = Field(default_factory=list)


class GitLabPipelineAttributes(_Payload):
    id: int
    ref: str
    status: str
    duration: int | None = None


class GitLabPipelinePayload(_Payload):
    """GitLab ``Pipeline Hook`` payload."""

    user: GitLabUser
    project: GitLabProject
    object_attributes: GitLabPipelineAttributes


# -- Travis CI ---------------------------------------------------------------


class TravisRepository(_Payload):
    name: str
    url: str | None = None


class TravisPayload(_Payload):
    """Travis CI build notification payload.

    ``number`` is a string in the payload; builds whose number is not a
    plain decimal integer are ignored.
    """

    state: str
    number: str
    branch: str
    duration: int | None = None
    build_url: str | None = None
    repository: TravisRepository
    committer_name: str | None = None
    committer_email: str | None = None
    pull_request: bool = False
    pull_request_number: int | None = None
    pull_request_title: str | None = None
    compare_url: str | None = None
