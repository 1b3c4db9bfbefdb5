"""Post position and track bias."""

from __future__ import annotations

from handicapper.config import ScoringConfig
from handicapper.models.race import HorseRecord
from handicapper.scoring.base import RaceContext, build_score

NEUTRAL_POST = 6
OUTSIDE_POINTS = 2
BIAS_BONUS = 1
WIDE_FIELD = 10
WIDE_FIELD_PENALTY = 1

# Generic preference tiers; posts not listed score OUTSIDE_POINTS.
SPRINT_POSTS = {1: 9, 2: 11, 3: 11, 4: 11, 5: 9, 6: 9, 7: 7, 8: 7, 9: 5, 10: 5}
ROUTE_POSTS = {1: 11, 2: 11, 3: 11, 4: 9, 5: 9, 6: 7, 7: 7, 8: 5, 9: 5, 10: 2}


def score_post_position(horse: HorseRecord, context: RaceContext, config: ScoringConfig):
    max_score = config.maxima.post_position
    post = horse.post_position
    if post is None:
        return build_score(
            "post_position", {"post": NEUTRAL_POST, "bias": 0}, max_score,
            ["post position unknown"], flags=["no_post_position"],
        )

    header = context.header
    table = SPRINT_POSTS if header.is_sprint else ROUTE_POSTS
    points = table.get(post, OUTSIDE_POINTS)
    reasons = [f"post {post} in a {'sprint' if header.is_sprint else 'route'}"]

    if context.field_size >= WIDE_FIELD and post >= context.field_size - 1:
        points -= WIDE_FIELD_PENALTY
        reasons.append(f"outside draw in a field of {context.field_size}")

    bias = 0
    if post in header.favored_posts:
        bias = BIAS_BONUS
        reasons.append("track bias favours this post")

    return build_score("post_position", {"post": max(points, 0), "bias": bias}, max_score, reasons)
