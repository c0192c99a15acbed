import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_STATE_PATH = str(Path.home() / ".prinbox" / "inbox-state.json")

DEFAULT_CONFIG: dict = {
    "store": "file",  # file | gist | memory
    "state_path": DEFAULT_STATE_PATH,
    "gist_id": None,
    "max_concurrency": 5,  # simultaneous status checks / channel PR lookups
    "search_limit": 50,
    "slack_lookback_days": 7,  # how far back a channel source looks on its first poll
}


def load_config(config_path: str = ".prinbox.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .prinbox.yml in the current directory
      3. CLI argument overrides
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    config["state_path"] = os.path.expanduser(config["state_path"])

    # Resolve credentials from environment variables
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["slack_token"] = os.environ.get("SLACK_TOKEN") or os.environ.get("SLACK_BOT_TOKEN")

    return config
