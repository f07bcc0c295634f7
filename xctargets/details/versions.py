import re
from typing import Optional, Tuple


# Dotted version strings compare per numeric component, "16.0" > "9.3"
# and "15" == "15.0"...
def version_key(version: str) -> Tuple[int, ...]:
    parts = []
    for part in str(version).split("."):
        match = re.match(r"\d+", part)
        parts.append(int(match.group(0)) if match else 0)
    while len(parts) > 1 and parts[-1] == 0:
        parts.pop()
    return tuple(parts)


def max_version(*versions: Optional[str]) -> Optional[str]:
    present = [v for v in versions if v]
    if not present:
        return None
    return max(present, key=version_key)
