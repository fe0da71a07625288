"""
GitHub activity gateway.

Fetches a user's commits, pull requests, reviews and issue comments for a date
range through the GitHub GraphQL API and normalizes them into ActivityRecords
whose event_date follows the 30-hour workday clock.
"""

from __future__ import annotations

from typing import Any, Protocol

import httpx

from worklog.activity.types import ActivityRecord, EventType, PrAction, SourceType
from worklog.activity.workday import to_work_date, work_range_bounds
from worklog.config import UTC_OFFSET_HOURS
from worklog.errors import ActivitySourceError
from worklog.infrastructure.settings import GITHUB_API_URL, GITHUB_HTTP_TIMEOUT
from worklog.observability.logging import get_logger
from worklog.observability.telemetry import counter, time_block

logger = get_logger(__name__)


class ActivitySourceGateway(Protocol):
    """Anything that can list a user's activity for a date range."""

    async def fetch_username(self, credential: str) -> str: ...

    async def fetch_activities(
        self,
        credential: str,
        identity: str,
        start_date: str,
        end_date: str,
    ) -> list[ActivityRecord]: ...


ACTIVITIES_QUERY = """
  query($login: String!, $from: DateTime!, $to: DateTime!) {
    user(login: $login) {
      contributionsCollection(from: $from, to: $to) {
        commitContributionsByRepository(maxRepositories: 50) {
          repository { nameWithOwner }
          contributions(first: 100) {
            nodes { commitCount occurredAt }
          }
        }
        pullRequestReviewContributions(first: 50) {
          nodes {
            occurredAt
            pullRequestReview { state }
            pullRequest {
              title url
              repository { nameWithOwner }
            }
          }
        }
      }
      pullRequests(first: 50, orderBy: {field: CREATED_AT, direction: DESC}) {
        nodes {
          title url state merged createdAt mergedAt closedAt
          repository { nameWithOwner }
        }
      }
      issueComments(first: 50, orderBy: {field: UPDATED_AT, direction: DESC}) {
        nodes {
          url createdAt
          issue {
            title
            repository { nameWithOwner }
          }
        }
      }
    }
  }
"""


class GitHubActivityGateway:
    """
    GitHub GraphQL client for activity ingestion.

    A custom httpx transport can be injected for tests.
    """

    def __init__(
        self,
        api_url: str = GITHUB_API_URL,
        timeout: float = GITHUB_HTTP_TIMEOUT,
        utc_offset_hours: float = UTC_OFFSET_HOURS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.utc_offset_hours = utc_offset_hours
        self._transport = transport

    def _client(self, credential: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.api_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={
                "Authorization": f"Bearer {credential}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
        )

    async def fetch_username(self, credential: str) -> str:
        """
        Login of the user the credential belongs to.

        Raises:
            ActivitySourceError: On HTTP or payload errors
        """
        async with self._client(credential) as client:
            try:
                response = await client.get("/user")
                response.raise_for_status()
                return response.json()["login"]
            except httpx.HTTPStatusError as e:
                counter("github.http_error")
                raise ActivitySourceError(
                    f"GitHub API error: {e.response.status_code} {e.response.reason_phrase}"
                ) from e
            except httpx.RequestError as e:
                counter("github.request_error")
                raise ActivitySourceError(f"GitHub request failed: {e}") from e
            except (KeyError, ValueError) as e:
                raise ActivitySourceError("GitHub API returned an unexpected user payload") from e

    async def _graphql(self, credential: str, query: str, variables: dict[str, Any]) -> dict:
        async with self._client(credential) as client:
            try:
                response = await client.post("/graphql", json={"query": query, "variables": variables})
                response.raise_for_status()
                payload = response.json()
            except httpx.HTTPStatusError as e:
                counter("github.http_error")
                raise ActivitySourceError(
                    f"GitHub GraphQL error: {e.response.status_code} {e.response.reason_phrase}"
                ) from e
            except httpx.RequestError as e:
                counter("github.request_error")
                raise ActivitySourceError(f"GitHub request failed: {e}") from e
            except ValueError as e:
                raise ActivitySourceError("GitHub GraphQL returned invalid JSON") from e

        errors = payload.get("errors")
        if errors:
            raise ActivitySourceError(f"GitHub GraphQL error: {errors[0].get('message')}")
        data = payload.get("data")
        if not data:
            raise ActivitySourceError("GitHub GraphQL error: no data returned")
        return data

    async def fetch_activities(
        self,
        credential: str,
        identity: str,
        start_date: str,
        end_date: str,
    ) -> list[ActivityRecord]:
        """
        Activity of `identity` whose work date falls in [start_date, end_date].

        Raises:
            ActivitySourceError: On HTTP, GraphQL or payload errors
        """
        range_from, range_to = work_range_bounds(start_date, end_date, self.utc_offset_hours)
        variables = {"login": identity, "from": range_from, "to": range_to}

        with time_block("github.fetch_activities.latency"):
            data = await self._graphql(credential, ACTIVITIES_QUERY, variables)

        try:
            records = self._normalize(data["user"], start_date, end_date)
        except (KeyError, TypeError, ValueError) as e:
            counter("github.bad_payload")
            raise ActivitySourceError(f"Unexpected GitHub payload shape: {e}") from e

        counter("github.activities_fetched", len(records))
        logger.info(
            "Fetched %d GitHub activities for %s (%s..%s)", len(records), identity, start_date, end_date
        )
        return records

    def _normalize(self, user: dict, start_date: str, end_date: str) -> list[ActivityRecord]:
        records: list[ActivityRecord] = []

        def add(
            event_type: EventType,
            timestamp: str,
            repo: str,
            title: str | None,
            url: str | None,
            metadata: dict | None,
        ) -> None:
            work_date = to_work_date(timestamp, self.utc_offset_hours)
            if not start_date <= work_date <= end_date:
                return
            records.append(
                ActivityRecord(
                    source_type=SourceType.GITHUB,
                    event_type=event_type,
                    event_date=work_date,
                    event_timestamp=timestamp,
                    repo=repo,
                    title=title,
                    url=url,
                    metadata=metadata,
                )
            )

        contributions = user["contributionsCollection"]

        for repo_contrib in contributions["commitContributionsByRepository"]:
            repo = repo_contrib["repository"]["nameWithOwner"]
            for node in repo_contrib["contributions"]["nodes"]:
                add(
                    EventType.COMMIT,
                    node["occurredAt"],
                    repo,
                    f"{node['commitCount']} commits",
                    f"https://github.com/{repo}",
                    {"count": node["commitCount"]},
                )

        # One record per lifecycle step: opened, then merged or closed
        for pr in user["pullRequests"]["nodes"]:
            repo = pr["repository"]["nameWithOwner"]
            add(EventType.PR, pr["createdAt"], repo, pr["title"], pr["url"], {"action": PrAction.OPENED.value})
            if pr.get("merged") and pr.get("mergedAt"):
                add(EventType.PR, pr["mergedAt"], repo, pr["title"], pr["url"], {"action": PrAction.MERGED.value})
            elif pr.get("state") == "CLOSED" and pr.get("closedAt"):
                add(EventType.PR, pr["closedAt"], repo, pr["title"], pr["url"], {"action": PrAction.CLOSED.value})

        for review in contributions["pullRequestReviewContributions"]["nodes"]:
            pull_request = review["pullRequest"]
            add(
                EventType.REVIEW,
                review["occurredAt"],
                pull_request["repository"]["nameWithOwner"],
                pull_request["title"],
                pull_request["url"],
                {"state": review["pullRequestReview"]["state"]},
            )

        for comment in user["issueComments"]["nodes"]:
            issue = comment["issue"]
            add(
                EventType.ISSUE_COMMENT,
                comment["createdAt"],
                issue["repository"]["nameWithOwner"],
                issue["title"],
                comment["url"],
                None,
            )

        return records
