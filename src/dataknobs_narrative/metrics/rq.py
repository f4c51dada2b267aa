"""RQ: Retrieval Quality.

Every scene is embedded once; each labeled query ranks all scenes by
cosine similarity. The score is the mean reciprocal rank of the first
relevant scene over labeled queries, and recall@k is reported alongside.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..context import MetricContext
from ..models import MetricResult
from ..registry import MetricDescriptor
from ..utils import as_number, average, first_present, normalize_string
from .base import scored, skipped

CODE = "RQ"
THRESHOLD = 0.6


@dataclass
class RetrievalQuery:
    query: str
    relevant: list[str] = field(default_factory=list)
    top_k: int | None = None
    id: str | None = None

    @classmethod
    def from_entry(cls, entry: Any) -> RetrievalQuery | None:
        """Normalize a query given as a string or a dict; None if unusable."""
        if isinstance(entry, str):
            return cls(query=normalize_string(entry))
        if not isinstance(entry, Mapping):
            return None
        relevant = first_present(
            entry, "relevant", "relevant_ids", "relevantIds", "answers", "ground_truth", default=[]
        )
        top_k = as_number(first_present(entry, "topK", "top_k", "k"))
        return cls(
            query=normalize_string(first_present(entry, "query", "q", "text", default="")),
            relevant=[str(r) for r in relevant] if isinstance(relevant, (list, tuple)) else [],
            top_k=int(top_k) if top_k is not None and top_k > 0 else None,
            id=None if entry.get("id") is None else str(entry.get("id")),
        )


def compute(ctx: MetricContext) -> MetricResult:
    queries = ctx.corpora.retrieval_queries
    if not queries:
        return skipped(CODE, THRESHOLD, "missing_retrieval_queries")

    scene_ids = ctx.world.scenes.ordered_ids
    if not scene_ids:
        return skipped(CODE, THRESHOLD, "no_scenes")

    scene_embeddings = []
    for scene_id in scene_ids:
        scene = ctx.world.scenes.by_id.get(scene_id)
        scene_embeddings.append((scene_id, ctx.embed(scene.text if scene else "")))

    default_k = ctx.options.rq_top_k
    per_query: list[dict[str, Any]] = []
    rr_list: list[float] = []
    recall_list: list[float] = []

    for i, entry in enumerate(queries):
        q = RetrievalQuery.from_entry(entry)
        if q is None or not q.query:
            continue
        query_id = q.id or f"q_{i + 1}"

        relevant = set(q.relevant)
        if not relevant:
            per_query.append({
                "id": query_id, "query": q.query, "status": "skipped", "reason": "no_ground_truth",
            })
            continue

        top_k = q.top_k or default_k
        q_emb = ctx.embed(q.query)
        ranked = sorted(
            ((sid, ctx.cosine(q_emb, emb)) for sid, emb in scene_embeddings),
            key=lambda x: x[1],
            reverse=True,
        )
        top = ranked[:top_k]

        first_rank = next((r for r, (sid, _) in enumerate(ranked, 1) if sid in relevant), None)
        rr = 1.0 / first_rank if first_rank else 0.0
        recall = sum(1 for sid, _ in top if sid in relevant) / len(relevant)

        rr_list.append(rr)
        recall_list.append(recall)
        per_query.append({
            "id": query_id,
            "query": q.query,
            "topK": top_k,
            "reciprocal_rank": rr,
            "first_relevant_rank": first_rank,
            "recall_at_k": recall,
            "top_results": [{"id": sid, "score": score} for sid, score in top],
        })

    if not rr_list:
        return skipped(CODE, THRESHOLD, "no_labeled_queries", per_query=per_query)

    mrr = average(rr_list)
    return scored(
        CODE,
        mrr,
        THRESHOLD,
        mrr > THRESHOLD,
        {
            "mrr": mrr,
            "recall_at_k_avg": average(recall_list),
            "labeled_queries": len(rr_list),
            "total_queries": len(queries),
            "per_query": per_query,
        },
    )


DESCRIPTOR = MetricDescriptor(
    code=CODE,
    compute=compute,
    threshold=THRESHOLD,
    description="Retrieval Quality",
)
