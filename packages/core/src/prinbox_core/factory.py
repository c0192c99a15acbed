"""Wire the real GitHub and Slack clients into a PollScheduler."""

from __future__ import annotations

from functools import partial

from prinbox_core.adapters.channel import ChannelAdapter
from prinbox_core.adapters.query import QueryAdapter
from prinbox_core.gh.pull_request import fetch_pr_details, get_client, get_status, search_prs
from prinbox_core.scheduler import PollScheduler
from prinbox_core.service import InboxService
from prinbox_core.slack.client import SlackClient


def build_scheduler(service: InboxService, config: dict) -> PollScheduler:
    gh = get_client(config.get("github_token"))
    slack = SlackClient(config.get("slack_token"))
    max_workers = config.get("max_concurrency", 5)

    adapters = [
        QueryAdapter(partial(search_prs, gh, limit=config.get("search_limit", 50))),
        ChannelAdapter(
            slack,
            partial(fetch_pr_details, gh),
            max_workers=max_workers,
            lookback_days=config.get("slack_lookback_days", 7),
        ),
    ]
    return PollScheduler(service, adapters, partial(get_status, gh), max_workers=max_workers)
