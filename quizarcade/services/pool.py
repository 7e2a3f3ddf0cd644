import random
from typing import Iterable, List, Optional
from quizarcade.models.orm import PoolEntry
from quizarcade.services.errors import EmptySelection

_system_rng = random.SystemRandom()

def shuffled_order(question_ids: Iterable[int], rng: Optional[random.Random] = None) -> List[int]:
    """Uniform random permutation of the ids. ``random.shuffle`` is Fisher-Yates."""
    order = sorted(set(question_ids))
    (rng or _system_rng).shuffle(order)
    return order

def generate_pool(session_id: Optional[int], question_ids: Iterable[int], rng: Optional[random.Random] = None) -> List[PoolEntry]:
    """
    Build one unconsumed pool entry per question with positions 1..N.

    ``session_id`` may be None when the entries are attached through the
    session relationship before the session row is flushed.
    """
    order = shuffled_order(question_ids, rng)
    if not order:
        raise EmptySelection()
    return [PoolEntry(session_id=session_id, question_id=qid, position=pos, is_used=False)
            for pos, qid in enumerate(order, start=1)]
