"""Author identity from the environment."""

import getpass
import os


class EnvironmentAuthorProvider:
    """Resolve the author from an environment variable or the login name."""

    DEFAULT_ENV_VAR = "MARKCO_AUTHOR"
    DEFAULT_FALLBACK = "user"

    def __init__(self, env_var: str | None = None, fallback: str | None = None):
        self.env_var = env_var or self.DEFAULT_ENV_VAR
        self.fallback = fallback or self.DEFAULT_FALLBACK

    def get_author(self) -> str:
        name = os.environ.get(self.env_var, "").strip()
        if name:
            return name
        try:
            name = getpass.getuser()
        except (KeyError, OSError):
            name = ""
        return name or self.fallback
