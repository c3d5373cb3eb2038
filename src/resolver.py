"""Duplicate/draft resolution over a loaded corpus.

Groups documents whose bodies are near-identical into clusters, orders
each cluster by editorial evolution (draft → revised draft → published)
and picks the last member as the canonical document. Earlier members
become historical revisions chained through ``revision_of``.

Ambiguity is reported per cluster and never aborts unrelated clusters.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Iterable, Sequence

from pydantic import BaseModel, Field

from inkwell.config import InkwellConfig
from inkwell.corpus import Corpus
from inkwell.errors import AmbiguousRevisionError, CorpusReport
from inkwell.models import Document, ResolutionState
from inkwell.similarity import candidate_pairs, fingerprint, similarity

logger = logging.getLogger(__name__)


class ClusterEdge(BaseModel):
    """Why two documents ended up in the same cluster."""

    source: str
    target: str
    reason: str = "similarity"
    score: float | None = None


class Cluster(BaseModel):
    """A set of documents judged to be revisions of one article.

    ``members`` is in editorial order once the cluster is ordered; for an
    ambiguous cluster it stays in load order.
    """

    members: list[Document]
    states: dict[str, ResolutionState] = Field(default_factory=dict)
    edges: list[ClusterEdge] = Field(default_factory=list)
    error: str | None = None

    @property
    def ids(self) -> list[str]:
        return [d.id for d in self.members]

    @property
    def is_ambiguous(self) -> bool:
        return self.error is not None

    @property
    def canonical(self) -> Document | None:
        for doc in self.members:
            if self.states.get(doc.id) is ResolutionState.CANONICAL:
                return doc
        return None

    @property
    def historical(self) -> list[Document]:
        return [
            d for d in self.members
            if self.states.get(d.id) is ResolutionState.HISTORICAL
        ]


class ResolvedCorpus(BaseModel):
    """Output of a resolve run: clusters plus the derived indexes."""

    clusters: list[Cluster] = Field(default_factory=list)
    report: CorpusReport = Field(default_factory=CorpusReport)

    @property
    def canonical(self) -> list[Document]:
        """Canonical documents, ordered by id."""
        docs = [c.canonical for c in self.clusters if c.canonical is not None]
        return sorted(docs, key=lambda d: d.id)

    @property
    def historical(self) -> list[Document]:
        return sorted(
            (d for c in self.clusters for d in c.historical), key=lambda d: d.id
        )

    @property
    def revision_index(self) -> dict[str, list[str]]:
        """Canonical id → historical ids, oldest first."""
        index: dict[str, list[str]] = {}
        for cluster in self.clusters:
            canonical = cluster.canonical
            if canonical is not None:
                index[canonical.id] = [d.id for d in cluster.historical]
        return dict(sorted(index.items()))

    @property
    def ambiguous(self) -> list[Cluster]:
        return [c for c in self.clusters if c.is_ambiguous]

    def cluster_of(self, doc_id: str) -> Cluster | None:
        for cluster in self.clusters:
            if doc_id in cluster.ids:
                return cluster
        return None

    def state_of(self, doc_id: str) -> ResolutionState:
        cluster = self.cluster_of(doc_id)
        if cluster is None:
            return ResolutionState.UNRESOLVED
        return cluster.states.get(doc_id, ResolutionState.UNRESOLVED)


class _DisjointSet:
    """Union-find over document ids, remembering first-seen order."""

    def __init__(self, items: Iterable[str]) -> None:
        self._parent: dict[str, str] = {item: item for item in items}

    def find(self, item: str) -> str:
        root = item
        while self._parent[root] != root:
            root = self._parent[root]
        while self._parent[item] != root:
            self._parent[item], item = root, self._parent[item]
        return root

    def union(self, a: str, b: str) -> None:
        root_a, root_b = self.find(a), self.find(b)
        if root_a != root_b:
            self._parent[root_b] = root_a

    def groups(self) -> list[list[str]]:
        grouped: dict[str, list[str]] = {}
        for item in self._parent:
            grouped.setdefault(self.find(item), []).append(item)
        return list(grouped.values())


def editorial_order_key(doc: Document) -> tuple[bool, datetime.date, int, str]:
    """Sort key: date when present (undated first), status rank, then path."""
    return (
        doc.date is not None,
        doc.date or datetime.date.min,
        doc.status.rank,
        doc.relative_path or doc.id,
    )


def _check_unambiguous(docs: Sequence[Document]) -> None:
    published_dates = {d.date for d in docs if d.is_published}
    if len(published_dates) > 1:
        dates = ", ".join(sorted(str(d) for d in published_dates))
        raise AmbiguousRevisionError(
            f"published documents in one cluster disagree on date ({dates})",
            document_ids=[d.id for d in docs if d.is_published],
        )


def resolve_cluster(
    documents: Sequence[Document],
    edges: Sequence[ClusterEdge] = (),
) -> Cluster:
    """Order one cluster and pick its canonical document.

    Raises:
        AmbiguousRevisionError: If two published members disagree on date.
    """
    if not documents:
        raise ValueError("cannot resolve an empty cluster")

    states = {
        d.id: ResolutionState.UNRESOLVED.advance(ResolutionState.CLUSTERED)
        for d in documents
    }
    _check_unambiguous(documents)

    ordered = sorted(documents, key=editorial_order_key)
    for doc in ordered:
        states[doc.id] = states[doc.id].advance(ResolutionState.ORDERED)

    members: list[Document] = []
    for position, doc in enumerate(ordered):
        if position == len(ordered) - 1:
            states[doc.id] = states[doc.id].advance(ResolutionState.CANONICAL)
            members.append(doc.with_revision_of(None))
        else:
            states[doc.id] = states[doc.id].advance(ResolutionState.HISTORICAL)
            members.append(doc.with_revision_of(ordered[position + 1].id))

    return Cluster(members=members, states=states, edges=list(edges))


def build_clusters(
    corpus: Corpus,
    config: InkwellConfig | None = None,
) -> list[tuple[list[Document], list[ClusterEdge]]]:
    """Partition the corpus into candidate clusters.

    Candidate pairs come from fingerprint blocking; only pairs scoring at
    or above the threshold are joined. Explicit ``revision_of`` links
    always join their two documents.
    """
    config = config or InkwellConfig()
    resolver_cfg = config.resolver
    fingerprints = {doc.id: fingerprint(doc.body, resolver_cfg) for doc in corpus}
    disjoint = _DisjointSet(corpus.ids)
    edges: list[ClusterEdge] = []

    pairs = sorted(candidate_pairs(fingerprints, resolver_cfg))
    logger.debug("Comparing %d candidate pair(s)", len(pairs))
    for a, b in pairs:
        score = similarity(fingerprints[a], fingerprints[b])
        if score >= resolver_cfg.threshold:
            disjoint.union(a, b)
            edges.append(ClusterEdge(source=a, target=b, score=round(score, 4)))

    for doc in corpus:
        if doc.revision_of is not None and doc.revision_of in corpus:
            disjoint.union(doc.id, doc.revision_of)
            edges.append(
                ClusterEdge(source=doc.id, target=doc.revision_of, reason="revision_of")
            )

    clusters: list[tuple[list[Document], list[ClusterEdge]]] = []
    for ids in disjoint.groups():
        members = set(ids)
        clusters.append(
            (
                [corpus[i] for i in ids],
                [e for e in edges if e.source in members],
            )
        )
    return clusters


def resolve(
    corpus: Corpus,
    config: InkwellConfig | None = None,
    report: CorpusReport | None = None,
) -> ResolvedCorpus:
    """Cluster, order and canonicalise every document in the corpus.

    Runs after the whole corpus is loaded. Ambiguous clusters are
    recorded on the report and contribute nothing to the canonical
    index; all other clusters resolve normally.
    """
    config = config or InkwellConfig()
    report = report if report is not None else CorpusReport()

    clusters: list[Cluster] = []
    for documents, edges in build_clusters(corpus, config):
        try:
            clusters.append(resolve_cluster(documents, edges))
        except AmbiguousRevisionError as exc:
            report.record("resolve", exc)
            clusters.append(
                Cluster(
                    members=list(documents),
                    states={d.id: ResolutionState.CLUSTERED for d in documents},
                    edges=list(edges),
                    error=exc.message,
                )
            )

    resolved = ResolvedCorpus(clusters=clusters, report=report)
    report.items_processed["clusters"] = len(clusters)
    report.items_processed["canonical"] = len(resolved.canonical)
    report.mark_stage_complete("resolve")
    logger.info(
        "Resolved %d document(s) into %d cluster(s), %d ambiguous",
        len(corpus),
        len(clusters),
        len(resolved.ambiguous),
    )
    return resolved
