import re
import shlex
from typing import List

from portwait.schemas.target import ProbeTarget


class Parser:
    def __init__(self, data):
        self.data = data

    def parse_targets(self) -> List[ProbeTarget]:
        """Parse 'db:5432,web:8000' (commas or whitespace) into unique targets, keeping order."""
        if not self.data:
            return []
        items = self.data if isinstance(self.data, (list, tuple)) else [self.data]
        targets = []
        for item in items:
            for chunk in re.split(r"[,\s]+", str(item)):
                if not chunk:
                    continue
                target = ProbeTarget.parse(chunk)
                if target not in targets:
                    targets.append(target)
        return targets

    def parse_command(self) -> List[str]:
        """Split a command string using POSIX shell quoting."""
        if not self.data:
            return []
        if isinstance(self.data, (list, tuple)):
            return [str(part) for part in self.data]
        return shlex.split(self.data)


def parse_targets(value) -> List[ProbeTarget]:
    return Parser(value).parse_targets()


def parse_command(value) -> List[str]:
    return Parser(value).parse_command()
