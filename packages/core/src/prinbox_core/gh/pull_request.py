from __future__ import annotations

import logging

from github import Github

from prinbox_core.models import DiscoveredPR, PRState, PRStatus

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 50


def get_client(token: str | None) -> Github:
    return Github(token) if token else Github()


def get_repo(gh: Github, owner: str, repo: str):
    return gh.get_repo(f"{owner}/{repo}")


def get_pull(gh: Github, owner: str, repo: str, number: int):
    return get_repo(gh, owner, repo).get_pull(number)


def pull_state(pr) -> str:
    """Collapse GitHub's state + merged flag into open / closed / merged."""
    if pr.merged:
        return PRState.MERGED
    if pr.state == "closed":
        return PRState.CLOSED
    return PRState.OPEN


def to_discovered(pr) -> DiscoveredPR:
    repo = pr.base.repo
    return DiscoveredPR(
        owner=repo.owner.login,
        repo=repo.name,
        number=pr.number,
        title=pr.title or "",
        author=pr.user.login if pr.user else "",
        url=pr.html_url,
        head_sha=pr.head.sha,
        state=pull_state(pr),
    )


def search_prs(gh: Github, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[DiscoveredPR]:
    """Run a GitHub issue search restricted to pull requests.

    Search results are issues; each is resolved to its pull request to obtain
    the head commit. At most ``limit`` results are returned.
    """
    if "is:pr" not in query.split():
        query = f"{query} is:pr"
    results = []
    for issue in gh.search_issues(query)[:limit]:
        results.append(to_discovered(issue.as_pull_request()))
    logger.debug("Search %r returned %d PR(s)", query, len(results))
    return results


def fetch_pr_details(gh: Github, owner: str, repo: str, number: int) -> DiscoveredPR:
    return to_discovered(get_pull(gh, owner, repo, number))


def get_status(gh: Github, owner: str, repo: str, number: int) -> PRStatus:
    pr = get_pull(gh, owner, repo, number)
    return PRStatus(
        head_sha=pr.head.sha,
        state=pull_state(pr),
        title=pr.title or "",
        author=pr.user.login if pr.user else "",
    )
