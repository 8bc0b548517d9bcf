"""Layered git configuration lookups (system, global, XDG, then repository)."""

import logging
import re
from typing import Optional

from git import Repo

_SECTION_RE = re.compile(r'^\s*([^\s"]+)(?:\s+"(.*)")?\s*$')


class LayeredConfig:
    """
    Read-only view over every git config file that applies to a repository.

    GitPython reads the files in precedence order, so the value from the
    most specific layer wins. Section and option names are matched
    case-insensitively the way git does; subsection names (branch and
    remote names) are case-sensitive.
    """

    def __init__(self, repo: Repo):
        self.logger = logging.getLogger('reposync.git_sync.config')
        self._reader = repo.config_reader()

    def get(self, key: str) -> Optional[str]:
        """
        Look up a dotted git config key, e.g. ``branch.main.pushRemote``.

        Returns:
            The last value set for the key, or None if no layer sets it
        """
        section_part, _, option = key.rpartition(".")
        if not section_part:
            return None
        section, _, subsection = section_part.partition(".")

        value = None
        for section_name in self._reader.sections():
            match = _SECTION_RE.match(section_name)
            if not match:
                continue
            name, sub = match.group(1), match.group(2)
            if name.lower() != section.lower() or (sub or "") != subsection:
                continue
            for option_name in self._reader.options(section_name):
                if option_name.lower() == option.lower():
                    value = self._reader.get(section_name, option_name)

        if value is not None:
            self.logger.debug(f"Config {key} = {value}")
        return value
