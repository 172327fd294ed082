import unittest
from datetime import date

from movie_meta.models import (
    CandidateResult,
    Failure,
    FailureKind,
    MediaKind,
    ParsedKey,
    ProviderError,
    ResolutionConfig,
    ResolvedMetadata,
)
from movie_meta.resolver import MetadataResolver
from movie_meta.status import BufferStatusSink


class _Provider:
    name = "TheMovieDB"

    def __init__(self, results=None, error: Exception | None = None) -> None:
        self.results = list(results or [])
        self.error = error
        self.calls: list[tuple[str, object]] = []

    def search(self, title, year=None):
        self.calls.append((title, year))
        if self.error:
            raise self.error
        return list(self.results)


class _Selector:
    def __init__(self, index: int = 0) -> None:
        self.index = index
        self.calls: list[list[tuple[str, str]]] = []

    def choose(self, options):
        self.calls.append(list(options))
        return self.index


def _candidate(title: str, year: int | None = 2020, poster: str | None = "/poster.jpg", **kwargs) -> CandidateResult:
    return CandidateResult(
        title=title,
        release_date=date(year, 5, 1) if year else None,
        overview=kwargs.pop("overview", f"About {title}"),
        poster_path=poster,
        tmdb_id=kwargs.pop("tmdb_id", None),
    )


class TestMetadataResolver(unittest.TestCase):
    def setUp(self) -> None:
        self.status = BufferStatusSink()

    def _resolve(self, provider, key, selector=None, manual=False):
        resolver = MetadataResolver(provider, image_base_url="https://img.example/original")
        return resolver.resolve(key, selector or _Selector(), ResolutionConfig(manual_mode=manual), self.status)

    def test_year_is_passed_to_search(self) -> None:
        provider = _Provider([_candidate("Heat", 1995)])
        self._resolve(provider, ParsedKey("Heat", 1995))
        self.assertEqual(provider.calls, [("Heat", 1995)])

    def test_single_candidate_never_prompts(self) -> None:
        selector = _Selector()
        result = self._resolve(_Provider([_candidate("Something Else")]), ParsedKey("Heat"), selector)
        self.assertIsInstance(result, ResolvedMetadata)
        self.assertEqual(result.title, "Something Else")
        self.assertEqual(selector.calls, [])

    def test_single_exact_candidate_ignores_manual_mode(self) -> None:
        selector = _Selector()
        result = self._resolve(_Provider([_candidate("Heat")]), ParsedKey("Heat"), selector, manual=True)
        self.assertIsInstance(result, ResolvedMetadata)
        self.assertEqual(selector.calls, [])

    def test_exact_first_title_is_auto_selected(self) -> None:
        selector = _Selector(index=1)
        provider = _Provider([_candidate("Heat", 1995), _candidate("Heat", 1986)])
        result = self._resolve(provider, ParsedKey("Heat"), selector)
        self.assertEqual(result.release_date.year, 1995)
        self.assertEqual(selector.calls, [])

    def test_manual_mode_prompts_on_exact_match(self) -> None:
        selector = _Selector(index=1)
        provider = _Provider([_candidate("Heat", 1995), _candidate("Heat", 1986)])
        result = self._resolve(provider, ParsedKey("Heat"), selector, manual=True)
        self.assertEqual(len(selector.calls), 1)
        self.assertEqual(result.release_date.year, 1986)

    def test_inexact_first_title_prompts_once_and_uses_choice(self) -> None:
        selector = _Selector(index=2)
        provider = _Provider(
            [
                _candidate("Heat Wave", 2001),
                _candidate("The Heat", None, poster=None),
                _candidate("Heat", 1995, overview="Crime epic", tmdb_id=949),
            ]
        )
        result = self._resolve(provider, ParsedKey("heat"), selector)
        self.assertEqual(
            selector.calls,
            [[("Heat Wave", "2001"), ("The Heat", "Unknown"), ("Heat", "1995")]],
        )
        self.assertEqual(result.title, "Heat")
        self.assertEqual(result.overview, "Crime epic")
        self.assertEqual(result.tmdb_id, 949)

    def test_selector_out_of_range_raises(self) -> None:
        provider = _Provider([_candidate("A"), _candidate("B")])
        with self.assertRaises(IndexError):
            self._resolve(provider, ParsedKey("C"), _Selector(index=5))

    def test_no_results_is_not_found(self) -> None:
        result = self._resolve(_Provider([]), ParsedKey("Nothing", 2000))
        self.assertIsInstance(result, Failure)
        self.assertEqual(result.kind, FailureKind.NOT_FOUND)
        self.assertEqual(result.title, "Nothing")
        self.assertIn("Nothing", result.message)

    def test_provider_error_is_search_failed(self) -> None:
        provider = _Provider(error=ProviderError("dns"))
        result = self._resolve(provider, ParsedKey("Heat"))
        self.assertIsInstance(result, Failure)
        self.assertEqual(result.kind, FailureKind.SEARCH_FAILED)
        self.assertEqual(len(provider.calls), 1)

    def test_missing_release_date_is_its_own_failure(self) -> None:
        result = self._resolve(_Provider([_candidate("Heat", None)]), ParsedKey("Heat"))
        self.assertIsInstance(result, Failure)
        self.assertEqual(result.kind, FailureKind.MISSING_RELEASE_DATE)

    def test_mapping_builds_cover_reference(self) -> None:
        result = self._resolve(_Provider([_candidate("Heat", 1995, poster="/abc.jpg")]), ParsedKey("Heat"))
        self.assertEqual(result.kind, MediaKind.MOVIE)
        self.assertEqual(result.cover_url, "https://img.example/original/abc.jpg")
        self.assertEqual(result.cover_filename, "abc.jpg")
        self.assertEqual(result.release_date, date(1995, 5, 1))
        self.assertTrue(result.found)
        self.assertTrue(result.artwork_available)
        self.assertTrue(result.complete)
        self.assertIn("Found Heat (1995) on TheMovieDB", self.status.infos())

    def test_missing_artwork_is_partial(self) -> None:
        result = self._resolve(_Provider([_candidate("Heat", 1995, poster="")]), ParsedKey("Heat"))
        self.assertIsInstance(result, ResolvedMetadata)
        self.assertTrue(result.found)
        self.assertFalse(result.artwork_available)
        self.assertFalse(result.complete)
        self.assertIsNone(result.cover_url)
        self.assertEqual(result.title, "Heat")
        self.assertEqual(result.overview, "About Heat")
        self.assertEqual(self.status.errors(), ["Error: failed to fetch movie cover"])

    def test_resolution_is_deterministic(self) -> None:
        provider = _Provider([_candidate("Heat", 1995), _candidate("Heat", 1986)])
        first = self._resolve(provider, ParsedKey("Heat"))
        second = self._resolve(provider, ParsedKey("Heat"))
        self.assertEqual(first, second)


if __name__ == "__main__":
    unittest.main()
