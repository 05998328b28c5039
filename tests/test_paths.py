"""Unit tests for protected-path prefix matching in auth/paths.py.

Covers:
- Prefix semantics (sub-paths protected, unrelated paths not)
- Most specific prefix wins for nested prefixes, in both orderings
- Regex metacharacters in prefixes are literal
- Legacy lexicographic order vs longest-first order
- normalize_path(): the form a file server resolves a request path to
"""

from auth.paths import match_path, normalize_path, ordered_prefixes

PATHS = {"/secret": "secret-entry", "/documents": "documents-entry"}


class TestMatchPath:
    def test_nested_path_matches_prefix(self):
        assert match_path(PATHS, "/secret/nested/file") == ("/secret", "secret-entry")

    def test_exact_path_matches(self):
        assert match_path(PATHS, "/documents") == ("/documents", "documents-entry")

    def test_unrelated_path_does_not_match(self):
        assert match_path(PATHS, "/public") is None

    def test_prefix_is_not_a_substring_search(self):
        assert match_path(PATHS, "/public/secret") is None

    def test_prefix_without_trailing_slash_matches_longer_names(self):
        # Plain startswith: "/secret" also covers "/secretive"
        assert match_path(PATHS, "/secretive") == ("/secret", "secret-entry")

    def test_empty_table(self):
        assert match_path({}, "/anything") is None

    def test_nested_prefixes_pick_most_specific(self):
        paths = {"/secret": "outer", "/secret/data": "inner"}
        assert match_path(paths, "/secret/data/x") == ("/secret/data", "inner")
        assert match_path(paths, "/secret/other") == ("/secret", "outer")
        assert match_path(paths, "/secret/data/x", longest=True) == ("/secret/data", "inner")

    def test_metacharacters_are_literal(self):
        paths = {"/files.v1": "dot", "/a+b": "plus", "/(x)": "parens"}
        assert match_path(paths, "/filesXv1/report") is None
        assert match_path(paths, "/files.v1/report") == ("/files.v1", "dot")
        assert match_path(paths, "/aab") is None
        assert match_path(paths, "/a+b/c") == ("/a+b", "plus")
        assert match_path(paths, "/(x)/y") == ("/(x)", "parens")


class TestOrdering:
    def test_legacy_order_is_descending_lexicographic(self):
        assert ordered_prefixes(["/aa", "/b", "/a"]) == ["/b", "/aa", "/a"]

    def test_longest_order_puts_longer_prefixes_first(self):
        assert ordered_prefixes(["/aa", "/b", "/a"], longest=True) == ["/aa", "/b", "/a"]

    def test_orderings_agree_on_matches(self):
        # Two prefixes of the same path are prefixes of each other, so both
        # orderings try the longer one first whenever both match.
        paths = {"/b": 1, "/aa": 2, "/a": 3, "/a/b": 4}
        for path in ("/aa/x", "/a/b/c", "/a/c", "/b", "/c"):
            assert match_path(paths, path) == match_path(paths, path, longest=True)


class TestNormalizePath:
    def test_already_normal(self):
        assert normalize_path("/static/private/report.txt") == "/static/private/report.txt"

    def test_doubled_slashes_collapse(self):
        assert normalize_path("/static//private///report.txt") == "/static/private/report.txt"
        assert normalize_path("//static/private") == "/static/private"

    def test_dot_segments_resolve(self):
        assert normalize_path("/static/public/../private/report.txt") == "/static/private/report.txt"
        assert normalize_path("/static/./private") == "/static/private"

    def test_cannot_climb_above_root(self):
        assert normalize_path("/../../secret") == "/secret"

    def test_trailing_slash_kept(self):
        assert normalize_path("/static//private/") == "/static/private/"
        assert normalize_path("/") == "/"
        assert normalize_path("") == "/"
