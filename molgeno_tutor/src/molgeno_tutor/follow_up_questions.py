"""
Follow-up question pools by knowledge tier, plus concept-specific prompts.
"""

from typing import List, Sequence

from molgeno_tutor.response_selector import SIMPLIFY_BELOW_LEVEL, ADVANCED_ABOVE_LEVEL

FOLLOW_UP_POOLS = {
    "beginner": [
        "What are the four bases found in DNA?",
        "What is the difference between DNA and RNA?",
        "What does a gene do?",
        "How does DNA store information?",
    ],
    "intermediate": [
        "How does RNA polymerase know where to start transcription?",
        "Why is the genetic code called degenerate?",
        "What is the role of tRNA in translation?",
        "How do the leading and lagging strands differ during replication?",
    ],
    "advanced": [
        "How does catabolite repression interact with the lac repressor?",
        "What mechanisms keep DNA replication error rates so low?",
        "How do eukaryotic enhancers regulate transcription at a distance?",
        "How are Holliday junctions resolved during homologous recombination?",
    ],
}

CONCEPT_QUESTIONS = {
    "dna structure": "Why do A-T and G-C pairs have different numbers of hydrogen bonds?",
    "transcription": "What happens to pre-mRNA before it leaves the nucleus?",
    "translation": "What happens when a ribosome reaches a stop codon?",
    "genetic code": "Why does the genetic code use three bases per codon?",
    "lac operon": "What happens to the lac operon when both glucose and lactose are present?",
    "replication": "Why is the lagging strand synthesized in Okazaki fragments?",
    "mutations": "How can a single point mutation change a protein's function?",
    "central dogma": "Which processes are exceptions to the central dogma?",
    "genetic recombination": "How does crossing over increase genetic diversity?",
}


def level_tier(level: float) -> str:
    """Map a 1-5 knowledge level to a follow-up tier."""
    if level < SIMPLIFY_BELOW_LEVEL:
        return "beginner"
    if level > ADVANCED_ABOVE_LEVEL:
        return "advanced"
    return "intermediate"


def suggest_questions(
    level: float,
    topics_used: Sequence[str] = (),
    rotation: int = 0,
    count: int = 2
) -> List[str]:
    """
    Pick follow-up questions.

    Concept questions for the topics used come first, then the tier pool
    starting at a rotating offset. Always returns `count` distinct questions.
    """
    candidates: List[str] = [CONCEPT_QUESTIONS[t] for t in topics_used if t in CONCEPT_QUESTIONS]

    pool = FOLLOW_UP_POOLS[level_tier(level)]
    offset = rotation % len(pool)
    candidates.extend(pool[offset:] + pool[:offset])

    unique = list(dict.fromkeys(candidates))
    return unique[:count]
