from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class RawPost:
    title: str
    content: str
    source_url: str


class Crawler:
    source_type: str

    def fetch(self, community: str, query: str, limit: int) -> List[RawPost]:
        raise NotImplementedError
