from __future__ import annotations

import logging

from workflows.soap.v1.nodes.recommendation_rules import generate_recommendations
from workflows.soap.v1.types import ScribeState


logger = logging.getLogger(__name__)


def recommend_node(state: ScribeState) -> dict:
    recommendations = generate_recommendations(state.get("note"))
    logger.debug(
        "Generated %d recommendations for %s", len(recommendations), state.get("note_id")
    )
    return {"recommendations": recommendations}
