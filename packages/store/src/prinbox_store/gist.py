"""GistStore: keep the inbox in a private GitHub Gist.

Why a Gist:
- Zero infra: the same GitHub token that polls PRs can read and write it.
- One inbox across machines: run `prinbox watch` on one host and browse the
  board from another with the same gist_id.

Data format: a single JSON file named `prinbox_inbox.json` inside the Gist,
holding the whole InboxState document. Each save() replaces the file in one
API call, which GitHub applies atomically.
"""

from __future__ import annotations

import json
import logging

from github import Github, InputFileContent

from prinbox_store.base import BaseStore

logger = logging.getLogger(__name__)

GIST_FILENAME = "prinbox_inbox.json"


class GistStore(BaseStore):
    """Stores the inbox document in a GitHub Gist.

    Unlike a review log, the inbox is the system of record for user commands,
    so read and write failures propagate to the caller instead of being
    swallowed.
    """

    def __init__(self, gist_id: str, token: str):
        self._gist_id = gist_id
        self._gh = Github(token)

    def _get_gist(self):
        return self._gh.get_gist(self._gist_id)

    def _read(self) -> dict | None:
        gist = self._get_gist()
        file_obj = gist.files.get(GIST_FILENAME)
        if file_obj is None:
            return None
        try:
            data = json.loads(file_obj.content or "null")
        except json.JSONDecodeError as e:
            logger.warning("GistStore: %s is not valid JSON, starting fresh: %s", GIST_FILENAME, e)
            return None
        return data if isinstance(data, dict) else None

    def _write(self, data: dict) -> None:
        gist = self._get_gist()
        gist.edit(files={GIST_FILENAME: InputFileContent(json.dumps(data, indent=2))})
        logger.debug("GistStore: saved inbox to gist %s", self._gist_id)
