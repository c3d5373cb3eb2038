"""Tests for body fingerprinting and similarity."""

from inkwell.config import ResolverConfig
from inkwell.similarity import (
    Fingerprint,
    candidate_pairs,
    fingerprint,
    minhash,
    normalize,
    paragraph_overlap,
    shingles,
    similarity,
    split_paragraphs,
)


def _reworded(body: str) -> str:
    """Change a couple of sentences, as an editing pass would."""
    return body.replace(
        "every test method, which",
        "each and every test method, an approach which",
    ).replace(
        "hides which collaborators",
        "obscures which of the collaborators",
    )


class TestSplitParagraphs:
    def test_blank_lines_separate(self):
        assert split_paragraphs("one\ntwo\n\nthree\n\n\nfour") == ["one\ntwo", "three", "four"]

    def test_code_fence_kept_whole(self):
        body = "Intro\n\n```csharp\nvar a = 1;\n\nvar b = 2;\n```\n\nOutro"
        paragraphs = split_paragraphs(body)
        assert paragraphs == ["Intro", "```csharp\nvar a = 1;\n\nvar b = 2;\n```", "Outro"]

    def test_empty(self):
        assert split_paragraphs("") == []
        assert split_paragraphs("\n\n") == []


class TestNormalize:
    def test_markup_and_whitespace(self):
        assert normalize("## The **Factory**  Method\n> quoted") == "the factory method quoted"

    def test_case_insensitive(self):
        assert normalize("Setup Method") == normalize("setup method")


class TestShinglesAndMinhash:
    def test_shingles(self):
        assert shingles("a b c d", 3) == {"a b c", "b c d"}
        assert shingles("a b", 3) == {"a b"}
        assert shingles("", 3) == set()

    def test_minhash_deterministic(self):
        tokens = {"a b c", "b c d"}
        assert minhash(tokens, 16) == minhash(set(tokens), 16)
        assert len(minhash(tokens, 16)) == 16

    def test_minhash_empty(self):
        assert minhash(set(), 16) == ()


class TestFingerprint:
    def test_short_paragraphs_ignored(self, draft_body):
        fp = fingerprint(draft_body)
        # four prose paragraphs plus the code block; headings are too short
        assert len(fp.paragraphs) == 5

    def test_bands(self, draft_body):
        fp = fingerprint(draft_body, ResolverConfig(num_perm=16, bands=4))
        assert len(fp.signature) == 16
        assert len(fp.bands(4)) == 4

    def test_empty_body(self):
        fp = fingerprint("")
        assert fp.is_empty
        assert fp.bands(4) == []


class TestSimilarity:
    def test_identical(self, draft_body):
        fp = fingerprint(draft_body)
        assert similarity(fp, fp) == 1.0

    def test_extended_body_is_similar(self, draft_body, fixture_post_body):
        a, b = fingerprint(draft_body), fingerprint(fixture_post_body)
        assert paragraph_overlap(a, b) == 1.0
        assert similarity(a, b) >= 0.8

    def test_reworded_body_is_similar(self, draft_body):
        a, b = fingerprint(draft_body), fingerprint(_reworded(draft_body))
        assert paragraph_overlap(a, b) < 1.0
        assert similarity(a, b) >= 0.8

    def test_unrelated_body(self, draft_body, ddd_body):
        assert similarity(fingerprint(draft_body), fingerprint(ddd_body)) < 0.8

    def test_empty_bodies_never_match(self):
        empty = fingerprint("")
        assert similarity(empty, empty) == 0.0

    def test_overlap_without_paragraphs(self):
        fp = Fingerprint(text="x", paragraphs=frozenset(), signature=())
        assert paragraph_overlap(fp, fp) == 0.0


class TestCandidatePairs:
    def test_blocks_near_duplicates_together(self, draft_body, fixture_post_body, ddd_body):
        fps = {
            "draft": fingerprint(draft_body),
            "post-v1": fingerprint(fixture_post_body),
            "post-v2": fingerprint(ddd_body),
            "reworded": fingerprint(_reworded(draft_body)),
        }
        pairs = candidate_pairs(fps)
        assert ("draft", "post-v1") in pairs
        assert ("draft", "reworded") in pairs
        assert not any("post-v2" in pair for pair in pairs)

    def test_pairs_are_ordered(self, draft_body):
        fps = {"b": fingerprint(draft_body), "a": fingerprint(draft_body)}
        assert candidate_pairs(fps) == {("a", "b")}

    def test_empty_bodies_not_paired(self):
        fps = {"a": fingerprint(""), "b": fingerprint("")}
        assert candidate_pairs(fps) == set()


class TestSharedParagraphMinimum:
    FOOTER = (
        "Thanks for reading! Questions and corrections are welcome in the comments below."
    )

    def test_single_shared_paragraph_is_not_containment(self, ddd_body):
        short = fingerprint("A short announcement about the new release.\n\n" + self.FOOTER)
        long = fingerprint(ddd_body + "\n" + self.FOOTER)
        assert len(short.paragraphs & long.paragraphs) == 1
        assert paragraph_overlap(short, long) == 0.0
        assert similarity(short, long) < 0.8

    def test_two_shared_paragraphs_count(self, draft_body):
        paragraphs = split_paragraphs(draft_body)
        # the first two prose paragraphs, without their headings
        body = "\n\n".join(paragraphs[1:2] + paragraphs[3:4])
        a, b = fingerprint(body), fingerprint(draft_body)
        assert paragraph_overlap(a, b) == 1.0

    def test_minimum_is_adjustable(self):
        fp = fingerprint(self.FOOTER)
        assert paragraph_overlap(fp, fp) == 0.0
        assert paragraph_overlap(fp, fp, min_shared=1) == 1.0
