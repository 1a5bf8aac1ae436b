"""
Identification Consensus Resolver

Reconciles species guesses from multiple independent providers into either
a confident identification or a ranked list of suggestions for the user.

Algorithm:
1. Drop failed providers; zero votes is a hard failure
2. If every vote is a non-plant vote, the photo is not a plant
3. Measure dispersion (mean / population std dev) across all confidences
4. Tally plant votes by scientific name and rank the groups
5. Accept the top group only if dispersion, confidence and agreement
   gates all pass; otherwise degrade to a disambiguation request
"""

import logging
from dataclasses import dataclass
from statistics import mean, pstdev
from typing import List, Optional

from app.core.config import ConsensusConfig
from app.core.exceptions import AllProvidersFailed, NoPlantDetected
from app.ml.identification.base import (
    ConsensusResult,
    IdentificationVote,
    ProviderOutcome,
    ResolvedIdentification,
    SelectionRequired,
    Suggestion,
)

logger = logging.getLogger(__name__)


@dataclass
class _VoteGroup:
    """Votes sharing one scientific name."""
    scientific_name: str
    common_name: str
    count: int = 0
    confidence_sum: float = 0.0

    @property
    def mean_confidence(self) -> float:
        return self.confidence_sum / self.count if self.count else 0.0

    def to_suggestion(self) -> Suggestion:
        return Suggestion(
            common_name=self.common_name,
            scientific_name=self.scientific_name,
            confidence=self.mean_confidence,
            votes=self.count,
        )


class ConsensusResolver:
    """
    Resolver for multi-provider species identification.

    Features:
    - Non-plant detection (sentinel names or zero confidence)
    - Dispersion check to catch inconsistent answers
    - Majority tally with confidence tie-breaking
    - Ranked suggestions when the gates are not met
    """

    def __init__(self, config: Optional[ConsensusConfig] = None):
        """
        Initialize the resolver.

        Args:
            config: Acceptance thresholds (defaults: confidence 0.6,
                variance 0.35, agreement 0.67)
        """
        self.config = config or ConsensusConfig()

    def resolve_outcomes(self, outcomes: List[ProviderOutcome]) -> ConsensusResult:
        """
        Resolve consensus from settled provider outcomes.

        Failed providers are tolerated as long as at least one vote exists.

        Raises:
            AllProvidersFailed: No provider produced a vote
            NoPlantDetected: Every vote says the image is not a plant
        """
        failed = [o for o in outcomes if o.has_error]
        for outcome in failed:
            logger.warning(f"Provider {outcome.provider} failed: {outcome.error}")

        votes = [o.vote for o in outcomes if not o.has_error]
        logger.info(f"Resolving consensus from {len(votes)}/{len(outcomes)} provider(s)")
        return self.resolve(votes)

    def resolve(self, votes: List[IdentificationVote]) -> ConsensusResult:
        """
        Resolve consensus from a list of votes.

        Args:
            votes: One vote per successful provider

        Returns:
            ResolvedIdentification or SelectionRequired
        """
        if not votes:
            raise AllProvidersFailed()

        if all(v.is_non_plant for v in votes):
            logger.info(f"All {len(votes)} provider(s) reported no plant")
            raise NoPlantDetected()

        confidences = [v.confidence for v in votes]
        spread = pstdev(confidences)
        logger.debug(f"Confidence mean={mean(confidences):.3f} stdDev={spread:.3f}")

        ranked = self._rank_groups(votes)
        candidate = ranked[0]
        total = len(votes)
        agreement_ratio = candidate.count / total

        failures = self._check_gates(spread, candidate, agreement_ratio)

        if not failures:
            logger.info(
                f"Consensus reached: {candidate.common_name} ({candidate.scientific_name}), "
                f"{candidate.count}/{total} agree, confidence {candidate.mean_confidence:.2f}"
            )
            return ResolvedIdentification(
                common_name=candidate.common_name,
                scientific_name=candidate.scientific_name,
                confidence=candidate.mean_confidence,
                agreement_ratio=agreement_ratio,
                models_agreed=candidate.count,
                total_models=total,
                notes=self._generate_notes(candidate.count, total, failures),
            )

        logger.info(f"Consensus not reached ({'; '.join(failures)}), requesting selection")
        return SelectionRequired(
            suggestions=[g.to_suggestion() for g in ranked[:self.config.max_suggestions]],
            agreement_ratio=agreement_ratio,
            models_agreed=candidate.count,
            total_models=total,
            notes=self._generate_notes(candidate.count, total, failures),
        )

    def _rank_groups(self, votes: List[IdentificationVote]) -> List[_VoteGroup]:
        """Group plant votes by scientific name, most supported first."""
        groups: dict[str, _VoteGroup] = {}

        for vote in votes:
            if vote.is_non_plant:
                continue
            key = vote.species_key
            if key not in groups:
                groups[key] = _VoteGroup(
                    scientific_name=vote.scientific_name.strip(),
                    common_name=vote.common_name.strip(),
                )
            groups[key].count += 1
            groups[key].confidence_sum += vote.confidence

        # sorted() is stable: equal groups keep first-encountered order
        return sorted(
            groups.values(),
            key=lambda g: (-g.count, -g.mean_confidence),
        )

    def _check_gates(
        self,
        spread: float,
        candidate: _VoteGroup,
        agreement_ratio: float
    ) -> List[str]:
        """Return the list of failed acceptance gates (empty when accepted)."""
        failures = []

        if spread > self.config.variance_threshold:
            failures.append(
                f"confidence spread {spread:.2f} exceeds {self.config.variance_threshold}"
            )
        if candidate.mean_confidence < self.config.confidence_threshold:
            failures.append(
                f"confidence {candidate.mean_confidence:.2f} below "
                f"{self.config.confidence_threshold}"
            )
        # Two-decimal comparison so that 2 of 3 providers meets a 0.67 gate
        if round(agreement_ratio, 2) < self.config.agreement_threshold:
            failures.append(
                f"agreement {agreement_ratio:.0%} below {self.config.agreement_threshold:.0%}"
            )

        return failures

    def _generate_notes(self, agreed: int, total: int, failures: List[str]) -> str:
        """Generate human-readable notes about the consensus."""
        if not failures:
            if agreed == total:
                return f"All {total} provider(s) agree."
            return f"{agreed} of {total} providers agree."
        return (
            f"Providers did not agree confidently ({agreed} of {total} on the top candidate): "
            + "; ".join(failures)
            + "."
        )
