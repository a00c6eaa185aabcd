"""
Construction File execution.

simulate() walks the steps in document order, resolves every input name
(earlier products first, then the file's sequences), runs the matching
simulator and records the product under the step's output name.
"""

from typing import AbstractSet, Dict, Iterable, List, Optional, Set

from eliot import log_message, start_action

from cfsim.assembly import assemble_molecule
from cfsim.enzymes import DEFAULT_REGISTRY, EnzymeRegistry
from cfsim.errors import UnresolvedReferenceError, UnsupportedOperationError
from cfsim.models import PCR, Assemble, ConstructionFile, ConstructionStep, Digest, Ligate, Product, Transform
from cfsim.sequtils import resolve_sequence
from cfsim.simulators import digest, ligate, pcr, transform


def resolve(name: str, products: Dict[str, str], sequences: Dict[str, str],
            step_output: Optional[str] = None) -> str:
    """Look a name up among earlier products, then among the input sequences."""
    if name in products:
        return products[name]
    if name in sequences:
        return resolve_sequence(sequences[name])
    raise UnresolvedReferenceError(name, step_output)


def run_step(step: ConstructionStep, products: Dict[str, str], sequences: Dict[str, str],
             registry: EnzymeRegistry = DEFAULT_REGISTRY, check_circular: bool = True,
             circular: AbstractSet[str] = frozenset()) -> Product:
    """
    Simulate a single step against the products made so far.

    ``circular`` names the earlier products that are circular; a Transform
    passes its input's topology on.
    """
    def get(name: str) -> str:
        return resolve(name, products, sequences, step.output)

    if isinstance(step, PCR):
        product = pcr(get(step.forward_oligo), get(step.reverse_oligo), get(step.template))
        if step.product_size is not None and step.product_size != len(product):
            log_message(message_type="cfsim:pcr:size_mismatch", output=step.output,
                        declared=step.product_size, predicted=len(product))
        return Product(step.output, product)
    if isinstance(step, Digest):
        return Product(step.output, digest(get(step.dna), step.enzymes, step.frag_select, registry))
    if isinstance(step, Ligate):
        return Product(step.output, ligate([get(name) for name in step.dnas], blunt=step.blunt), circular=True)
    if isinstance(step, Assemble):
        molecule = assemble_molecule([get(name) for name in step.dnas], step.enzyme, registry,
                                     check_circular=check_circular)
        return Product(step.output, molecule.sequence, circular=molecule.circular)
    if isinstance(step, Transform):
        return Product(step.output, transform(get(step.dna)),
                       circular=step.dna in circular)
    raise UnsupportedOperationError(getattr(step, "operation", type(step).__name__))


def simulate(cf: ConstructionFile, registry: EnzymeRegistry = DEFAULT_REGISTRY,
             check_circular: bool = True) -> List[Product]:
    """
    Simulate every step of a Construction File in order.

    Args:
        cf: the parsed Construction File.
        registry: restriction enzymes available to Digest and Assemble steps.
        check_circular: require Gibson assemblies to close into a circle.

    Returns:
        One Product(name, sequence, circular) per step, in step order.

    Raises:
        ConstructionFileError: any step failure aborts the whole run.
    """
    with start_action(action_type="simulate_construction_file",
                      num_steps=len(cf.steps), num_sequences=len(cf.sequences)) as action:
        products: Dict[str, str] = {}
        circular: Set[str] = set()
        results: List[Product] = []
        for index, step in enumerate(cf.steps):
            with start_action(action_type="simulate_step", index=index,
                              operation=getattr(step, "operation", None),
                              output=getattr(step, "output", None),
                              inputs=getattr(step, "inputs", None)) as step_action:
                product = run_step(step, products, cf.sequences, registry, check_circular, circular)
                step_action.add_success_fields(product_length=len(product.sequence),
                                               circular=product.circular)
            products[product.name] = product.sequence
            if product.circular:
                circular.add(product.name)
            else:
                circular.discard(product.name)
            results.append(product)
        action.add_success_fields(products=[p.name for p in results])
        return results


def circular_products(products: Iterable[Product]) -> Set[str]:
    """Names of the simulated products that came out circular."""
    return {p.name for p in products if p.circular}


def products_table(products: List[Product]) -> List[List[object]]:
    """Products as spreadsheet rows, with a header row."""
    rows: List[List[object]] = [["name", "sequence", "length"]]
    rows.extend([p.name, p.sequence, len(p.sequence)] for p in products)
    return rows
