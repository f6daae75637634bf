"""
Multi-service face result integration

Merges the face lists returned by concurrently-run face providers into one
ordered list of IntegratedPerson. One provider's list is the structural
primary; the others are layered on by array position.

Known limitation: alignment is positional. Providers that report faces in
different orders will attach observations of different people to the same
subject. Geometric (bounding-box overlap) matching is not attempted.
"""
from typing import Dict, List, Optional, Sequence

from src.core.evidence import FaceObservation, IntegratedPerson, UNKNOWN_GENDER
from src.core.results import ProviderResult
from src.utils.logger import get_logger

logger = get_logger(__name__)


def person_label(index: int, observations: Sequence[FaceObservation]) -> str:
    """Human-readable label such as 'Person 2 (Female)'"""
    label = f"Person {index + 1}"
    for observation in observations:
        gender = (observation.estimated_gender or UNKNOWN_GENDER).lower()
        if gender != UNKNOWN_GENDER:
            return f"{label} ({gender.capitalize()})"
    return label


class ResultIntegrator:
    """Merges per-provider face lists into integrated per-person profiles"""

    def __init__(self, preference_order: Sequence[str]):
        self.preference_order = list(preference_order)

    def _ordered(self, results: Sequence[ProviderResult[List[FaceObservation]]]):
        rank = {name: i for i, name in enumerate(self.preference_order)}
        return sorted(results, key=lambda r: rank.get(r.provider, len(rank)))

    def integrate(
        self,
        results: Sequence[ProviderResult[List[FaceObservation]]],
        max_people: int
    ) -> List[IntegratedPerson]:
        """
        Merge settled face-provider results

        Args:
            results: One settled result per face provider, any order
            max_people: Upper bound on returned subjects

        Returns:
            At most min(len(primary faces), max_people) people; empty when no
            provider reported a face
        """
        ordered = self._ordered(results)
        service_status: Dict[str, bool] = {r.provider: r.ok for r in ordered}

        primary: Optional[ProviderResult[List[FaceObservation]]] = None
        for result in ordered:
            if result.ok and result.value:
                primary = result
                break

        if primary is None:
            logger.info("No face provider reported any faces")
            return []

        if primary.provider != ordered[0].provider:
            logger.info(f"Preferred face provider had no faces; using {primary.provider} as primary")

        count = min(len(primary.value), max(max_people, 0))
        people: List[IntegratedPerson] = []

        for i in range(count):
            secondaries: Dict[str, FaceObservation] = {}
            for result in ordered:
                if result is primary or not result.ok or not result.value:
                    continue
                if i < len(result.value):
                    secondaries[result.provider] = result.value[i]

            primary_observation = primary.value[i]
            people.append(IntegratedPerson(
                person_label=person_label(i, [primary_observation, *secondaries.values()]),
                primary_provider=primary.provider,
                primary_observation=primary_observation,
                secondary_observations=secondaries,
                service_status=dict(service_status),
            ))

        logger.info(
            f"Integrated {len(people)} people from {sum(service_status.values())} face providers",
            extra={"primary": primary.provider, "service_status": service_status}
        )
        return people
