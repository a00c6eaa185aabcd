"""FASTA / GenBank import of input sequences and export of simulated products."""

from typing import Dict, Iterable, List

from eliot import start_action
from pydna.dseqrecord import Dseqrecord
from pydna.parsers import parse as parse_records

from cfsim.models import Product
from cfsim.sequtils import resolve_sequence

EXPORT_FORMATS = ("fasta", "genbank", "gb")


def read_sequences(content: str) -> Dict[str, str]:
    """
    Read every record of a FASTA or GenBank text into a name -> sequence dict.

    The result can be merged into ``ConstructionFile.sequences``.
    """
    with start_action(action_type="read_sequences", content_length=len(content)) as action:
        sequences = {}
        for record in parse_records(content):
            sequences[record.name or record.id] = resolve_sequence(str(record.seq))
        if not sequences:
            raise ValueError("No sequence records found")
        action.add_success_fields(names=list(sequences))
        return sequences


def write_products(products: Iterable[Product], file_format: str = "fasta") -> str:
    """Format products as FASTA or GenBank, GenBank records carrying each product's topology."""
    if file_format not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format: {file_format}")
    with start_action(action_type="write_products", format=file_format) as action:
        chunks: List[str] = []
        for product in products:
            record = Dseqrecord(product.sequence, id=product.name, name=product.name,
                                circular=product.circular)
            chunks.append(record.format(file_format).strip())
        text = "\n".join(chunks) + "\n"
        action.add_success_fields(num_records=len(chunks), length=len(text))
        return text
