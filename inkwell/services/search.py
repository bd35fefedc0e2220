"""
Fuzzy post search.

Posts are matched token by token: the title and Markdown body are split on
whitespace and every token is scored against the query with a string
similarity function. A score of 0.9 or more only catches different
capitalization and small typos, which keeps results precise at the cost of
recall.
"""
from typing import Callable, Iterable, List, Sequence

from rapidfuzz.distance import JaroWinkler
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.models.post import Post
from inkwell.schemas.post import Post as PostSchema
from inkwell.schemas.search import SearchResult
from inkwell.services.post import PostService

Similarity = Callable[[str, str], float]

DEFAULT_THRESHOLD = 0.9


def jaro_winkler(a: str, b: str) -> float:
    """Case-insensitive Jaro-Winkler similarity in the range [0, 1]."""
    return JaroWinkler.similarity(a.lower(), b.lower())


def tokenize(text: str) -> List[str]:
    """Split text into whitespace-delimited words, punctuation included."""
    return text.split()


def _has_match(tokens: Iterable[str], query: str, similarity: Similarity, threshold: float) -> bool:
    return any(similarity(token, query) >= threshold for token in tokens)


def search_posts(
    query: str,
    posts: Sequence[Post],
    similarity: Similarity = jaro_winkler,
    threshold: float = DEFAULT_THRESHOLD,
) -> List[Post]:
    """
    Return the published posts with a body or title token similar to query.

    Results keep the order of ``posts`` and contain each post at most once.
    The body is checked before the title and scanning stops at the first
    matching token.
    """
    results: List[Post] = []
    for post in posts:
        if not post.is_published:
            continue
        if _has_match(tokenize(post.markdown), query, similarity, threshold) or _has_match(
            tokenize(post.title), query, similarity, threshold
        ):
            results.append(post)
    return results


class SearchService:
    def __init__(
        self,
        db: AsyncSession,
        similarity: Similarity = jaro_winkler,
        threshold: float = DEFAULT_THRESHOLD,
    ):
        self.db = db
        self.similarity = similarity
        self.threshold = threshold

    async def search(self, query: str) -> SearchResult:
        posts = await PostService(self.db).get_all()
        matches = search_posts(query, posts, similarity=self.similarity, threshold=self.threshold)
        return SearchResult(
            query=query,
            posts=[PostSchema.model_validate(post) for post in matches],
        )
