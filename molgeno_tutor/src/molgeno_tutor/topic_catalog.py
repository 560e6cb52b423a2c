"""
Topic Catalog

Static molecular genetics reference table keyed by topic identifier.
Supports:
- Exact topic-id matching (highest priority)
- Keyword matching
- Catalog listing in definition order
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


DIFFICULTY_LEVELS = ("beginner", "intermediate", "advanced")


@dataclass(frozen=True)
class Topic:
    """A molecular genetics topic with metadata."""
    topic_id: str
    title: str
    content: str
    keywords: Tuple[str, ...] = ()
    difficulty: str = "intermediate"  # "beginner", "intermediate", "advanced"
    related_topics: Tuple[str, ...] = ()
    examples: Tuple[str, ...] = field(default_factory=tuple)


class TopicCatalog:
    """
    Read-only catalog of topics.

    Iteration order is definition order; lookup relies on it for tie-breaking.
    """

    def __init__(self, topics: Optional[List[Topic]] = None):
        self._topics: Dict[str, Topic] = {}
        for topic in (topics if topics is not None else default_topics()):
            if topic.difficulty not in DIFFICULTY_LEVELS:
                raise ValueError(f"Unknown difficulty '{topic.difficulty}' for topic '{topic.topic_id}'")
            self._topics[topic.topic_id.lower()] = topic

    def __len__(self) -> int:
        return len(self._topics)

    def __contains__(self, topic_id: str) -> bool:
        return topic_id.lower() in self._topics

    def get(self, topic_id: str) -> Optional[Topic]:
        return self._topics.get(topic_id.lower())

    def topics(self) -> List[Topic]:
        """All topics in definition order."""
        return list(self._topics.values())

    def lookup(self, query: str) -> Optional[Topic]:
        """
        Find the most relevant topic for a query.

        Args:
            query: Free-text user question

        Returns:
            Topic whose id appears verbatim in the query, otherwise the first
            topic with a keyword in the query, otherwise None
        """
        query_lower = (query or "").lower()

        # First pass: topic id appears in the query
        for topic_id, topic in self._topics.items():
            if topic_id in query_lower:
                return topic

        # Second pass: any keyword appears in the query
        for topic in self._topics.values():
            for keyword in topic.keywords:
                if keyword.lower() in query_lower:
                    return topic

        return None


def default_topics() -> List[Topic]:
    """Molecular genetics topics shipped with the tutor."""
    return [
        Topic(
            topic_id="dna structure",
            title="DNA Structure",
            content=(
                "DNA (Deoxyribonucleic Acid) has a double-helical structure composed of two antiparallel strands. "
                "Each strand consists of nucleotides containing a deoxyribose sugar, phosphate group, and one of four "
                "nitrogenous bases: Adenine (A), Thymine (T), Cytosine (C), and Guanine (G). "
                "Bases form complementary pairs: A-T and G-C, connected by hydrogen bonds. "
                "The structure was discovered by Watson and Crick in 1953."
            ),
            keywords=("double helix", "nucleotides", "base pairing", "watson crick"),
            difficulty="beginner",
            related_topics=("replication", "central dogma"),
            examples=("The sequence 5'-ATGC-3' pairs with 3'-TACG-5' on the complementary strand.",),
        ),
        Topic(
            topic_id="transcription",
            title="Transcription Process",
            content=(
                "Transcription is the first step of gene expression where DNA is copied into mRNA. "
                "RNA polymerase binds to promoter regions and unwinds the DNA helix. "
                "The template strand is used to synthesize a complementary mRNA molecule in the 5' to 3' direction. "
                "Key steps include: initiation, elongation, and termination. "
                "In eukaryotes, mRNA undergoes processing including 5' capping, splicing, and 3' polyadenylation."
            ),
            keywords=("rna polymerase", "promoter", "template strand", "mrna synthesis"),
            difficulty="intermediate",
            related_topics=("translation", "lac operon"),
            examples=("The TATA box upstream of many eukaryotic genes helps position RNA polymerase II.",),
        ),
        Topic(
            topic_id="translation",
            title="Translation Process",
            content=(
                "Translation converts mRNA into proteins through ribosomes. "
                "Ribosomes read mRNA codons (triplets) and tRNA molecules bring corresponding amino acids. "
                "The process includes: initiation (start codon AUG), elongation (peptide bond formation), "
                "and termination (stop codons UAA, UAG, UGA). "
                "The genetic code is degenerate, universal, and non-overlapping."
            ),
            keywords=("ribosome", "codon", "trna", "amino acids"),
            difficulty="intermediate",
            related_topics=("genetic code", "transcription"),
            examples=("The mRNA AUG-GCU-UAA is translated into Met-Ala and then released at the stop codon.",),
        ),
        Topic(
            topic_id="genetic code",
            title="Genetic Code",
            content=(
                "The genetic code is the set of rules by which mRNA sequences are translated into proteins. "
                "It's characterized by: 1) Triplet nature (3 bases per codon), 2) Degeneracy (multiple codons "
                "code for same amino acid), 3) Universality (mostly conserved across species), 4) Non-overlapping, "
                "5) Start codon (AUG for Methionine), 6) Stop codons (UAA, UAG, UGA)."
            ),
            keywords=("codon table", "start codon", "stop codon", "degenerate"),
            difficulty="beginner",
            related_topics=("translation", "mutations"),
            examples=("GCU, GCC, GCA and GCG all code for Alanine, which shows degeneracy.",),
        ),
        Topic(
            topic_id="lac operon",
            title="Lac Operon Regulation",
            content=(
                "The lac operon is a classic example of gene regulation in E. coli. "
                "It controls lactose metabolism and consists of: structural genes (lacZ, lacY, lacA), operator, "
                "promoter, and repressor. "
                "In absence of lactose, repressor binds operator preventing transcription. "
                "When lactose is present, it acts as inducer, inactivating repressor and allowing transcription."
            ),
            keywords=("operon", "gene regulation", "lactose", "repressor", "inducer"),
            difficulty="advanced",
            related_topics=("transcription",),
            examples=("With glucose absent and lactose present, cAMP-CAP binding maximizes lac transcription.",),
        ),
        Topic(
            topic_id="replication",
            title="DNA Replication",
            content=(
                "DNA replication is semi-conservative and bidirectional. "
                "Key enzymes: Helicase (unwinds DNA), Primase (synthesizes RNA primers), DNA Polymerase III "
                "(extends primers), DNA Polymerase I (replaces primers), Ligase (joins Okazaki fragments). "
                "Leading strand is continuous, lagging strand is discontinuous. "
                "Replication ensures genetic continuity."
            ),
            keywords=("semi-conservative", "helicase", "dna polymerase", "okazaki fragments"),
            difficulty="intermediate",
            related_topics=("dna structure", "mutations"),
            examples=("The Meselson-Stahl experiment used 15N and 14N to show replication is semi-conservative.",),
        ),
        Topic(
            topic_id="mutations",
            title="Genetic Mutations",
            content=(
                "Mutations are changes in DNA sequence. "
                "Types include: Point mutations (substitutions), Frameshift mutations (insertions/deletions), "
                "Silent mutations (no amino acid change), Missense (amino acid change), "
                "Nonsense (premature stop codon). "
                "Mutations can be spontaneous or induced by mutagens."
            ),
            keywords=("point mutation", "frameshift", "missense", "nonsense", "mutation"),
            difficulty="intermediate",
            related_topics=("genetic code", "replication"),
            examples=("Sickle cell anemia is caused by a missense mutation (Glu6Val) in the beta-globin gene.",),
        ),
        Topic(
            topic_id="central dogma",
            title="Central Dogma of Molecular Biology",
            content=(
                "The Central Dogma describes information flow: DNA → RNA → Protein. "
                "Key processes: Replication (DNA to DNA), Transcription (DNA to RNA), Translation (RNA to Protein). "
                "Reverse transcription (RNA to DNA) occurs in retroviruses. "
                "This framework explains how genetic information is expressed and maintained."
            ),
            keywords=("dna to rna", "rna to protein", "information flow", "crick"),
            difficulty="beginner",
            related_topics=("transcription", "translation", "replication"),
            examples=("HIV uses reverse transcriptase to copy its RNA genome into DNA.",),
        ),
        Topic(
            topic_id="genetic recombination",
            title="Genetic Recombination",
            content=(
                "Genetic recombination is the exchange of genetic material between DNA molecules. "
                "In meiosis, homologous chromosomes pair and swap segments through crossing over, "
                "producing new allele combinations. "
                "Bacteria recombine DNA through transformation, transduction, and conjugation. "
                "Recombination frequencies between genes are used to build genetic linkage maps."
            ),
            keywords=("recombination", "crossing over", "homologous", "linkage", "conjugation"),
            difficulty="advanced",
            related_topics=("replication", "mutations"),
            examples=("A 10% recombination frequency between two genes corresponds to 10 map units (cM).",),
        ),
    ]
