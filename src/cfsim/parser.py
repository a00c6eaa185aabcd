"""
Construction File parser.

Input arrives in loose shapes: a single string, one spreadsheet row, a whole
2-D range, or multi-line text pasted from a document. Parsing runs in three
independent stages:

1. normalize() flattens every blob into one text block (rows become lines,
   cells are tab-joined).
2. tokenize() splits a line on whitespace, commas, parentheses and slashes and
   drops the filler words "on" and "with".
3. classify() turns a token list into a ConstructionStep, a ``(name, sequence)``
   definition, or None for lines that are neither.

parse() strings the stages together and builds a ConstructionFile. serialize()
writes one back as CF text that parses to an equal ConstructionFile.
"""

import re
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from eliot import log_message, start_action

from cfsim.errors import ParseError
from cfsim.models import (
    GIBSON_MARKER,
    PCR,
    Assemble,
    ConstructionFile,
    ConstructionStep,
    Digest,
    Ligate,
    Transform,
)
from cfsim.sequtils import is_sequence_text, resolve_sequence

FILLER_WORDS = frozenset({"on", "with"})

_SPLIT_RE = re.compile(r"[\s,()/]+")
_SIZE_RE = re.compile(r"^(\d+)(bp)?$", re.IGNORECASE)
_TEMPERATURE_RE = re.compile(r"^(\d+(?:\.\d+)?)C?$", re.IGNORECASE)

Definition = Tuple[str, str]
Classified = Union[PCR, Digest, Ligate, Assemble, Transform, Definition, None]


# ---------------------------------------------------------------------------
# Normalization and tokenization
# ---------------------------------------------------------------------------

def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _is_row(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def normalize(*blobs: Any) -> str:
    """
    Flatten scalars, 1-D rows and 2-D tables into a single text block.

    Example:
        >>> normalize([["PCR", "f", "r", "t", "p"]], "seq ACGT")
        'PCR\\tf\\tr\\tt\\tp\\nseq ACGT'
    """
    blocks = []
    for blob in blobs:
        if _is_row(blob) and any(_is_row(row) for row in blob):
            rows = (row if _is_row(row) else [row] for row in blob)
            blocks.append("\n".join("\t".join(_cell(c) for c in row) for row in rows))
        elif _is_row(blob):
            blocks.append("\t".join(_cell(c) for c in blob))
        else:
            blocks.append(_cell(blob))
    return "\n".join(blocks)


def tokenize(line: str) -> List[str]:
    return [
        token for token in _SPLIT_RE.split(line)
        if token and token.lower() not in FILLER_WORDS
    ]


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def _malformed(tokens: Sequence[str], reason: str) -> ParseError:
    return ParseError(" ".join(tokens), 0, reason)


def _pcr(op: str, args: List[str]) -> PCR:
    args = [a for a in args if a.lower() != "bp"]
    if len(args) not in (4, 5):
        raise _malformed([op] + args, "PCR needs forward, reverse, template, [size], output")
    product_size = None
    if len(args) == 5:
        match = _SIZE_RE.match(args[3])
        if not match:
            raise _malformed([op] + args, f"bad PCR product size {args[3]!r}")
        product_size = int(match.group(1))
    return PCR(
        forward_oligo=args[0],
        reverse_oligo=args[1],
        template=args[2],
        product_size=product_size,
        output=args[-1],
    )


def _digest(op: str, args: List[str]) -> Digest:
    if len(args) < 4:
        raise _malformed([op] + args, "Digest needs dna, enzymes, fragment index, output")
    try:
        frag_select = int(args[-2])
    except ValueError:
        raise _malformed([op] + args, f"bad fragment index {args[-2]!r}") from None
    return Digest(dna=args[0], enzymes=args[1:-2], frag_select=frag_select, output=args[-1])


def _ligate(op: str, args: List[str]) -> Ligate:
    if len(args) < 2:
        raise _malformed([op] + args, "Ligate needs fragments and an output")
    return Ligate(dnas=args[:-1], output=args[-1], blunt=op == "blunt")


def _assemble(op: str, args: List[str]) -> Assemble:
    if len(args) < 3:
        raise _malformed([op] + args, "Assemble needs fragments, enzyme, output")
    enzyme = args[-2]
    if enzyme.lower() == GIBSON_MARKER:
        enzyme = GIBSON_MARKER
    return Assemble(dnas=args[:-2], enzyme=enzyme, output=args[-1])


def _gibson(op: str, args: List[str]) -> Assemble:
    if len(args) < 2:
        raise _malformed([op] + args, "Gibson needs fragments and an output")
    return Assemble(dnas=args[:-1], enzyme=GIBSON_MARKER, output=args[-1])


def _transform(op: str, args: List[str]) -> Transform:
    if len(args) < 3:
        raise _malformed([op] + args, "Transform needs dna, strain, [antibiotics], [temperature], output")
    markers = args[2:-1]
    temperature = None
    if markers:
        match = _TEMPERATURE_RE.match(markers[-1])
        if match:
            temperature = float(match.group(1))
            markers = markers[:-1]
    return Transform(
        dna=args[0],
        strain=args[1],
        antibiotics=markers,
        temperature=temperature,
        output=args[-1],
    )


OPERATIONS: Dict[str, Callable[[str, List[str]], ConstructionStep]] = {
    "pcr": _pcr,
    "digest": _digest,
    "ligate": _ligate,
    "blunt": _ligate,
    "assemble": _assemble,
    "goldengate": _assemble,
    "gibson": _gibson,
    "transform": _transform,
}


def classify(tokens: Sequence[str]) -> Classified:
    """
    Classify one tokenized line.

    Returns a ConstructionStep for operation lines, a ``(name, sequence)``
    tuple for sequence definitions and None for anything else.

    Raises:
        ParseError: the line starts with an operation but its arguments do
            not fit that operation's layout.
    """
    if not tokens:
        return None
    op = tokens[0].lower()
    if op in OPERATIONS:
        return OPERATIONS[op](op, list(tokens[1:]))
    if len(tokens) > 1:
        text = "".join(tokens[1:])
        if is_sequence_text(text):
            return tokens[0], resolve_sequence(text)
    return None


def parse(*blobs: Any, strict: bool = False) -> ConstructionFile:
    """
    Parse one or more blobs of CF text or tabular cells into a ConstructionFile.

    Args:
        *blobs: strings, rows (lists of cells) or tables (lists of rows).
        strict: raise ParseError on lines that are neither an operation nor a
            sequence definition. When False such lines are dropped and logged.

    Example Input:
        PCR ca4238F ca4238R on pTP1 (1000 bp) pcrpdt
        Digest pcrpdt EcoRI/BamHI 1 pcrdig
        ca4238F ccataGAATTCatgagtaaaggagaagaacttttc

    Example Output:
        ConstructionFile(steps=[PCR(...), Digest(...)],
                         sequences={"ca4238F": "CCATAGAATTC..."})
    """
    with start_action(action_type="parse_construction_file", blobs=len(blobs), strict=strict) as action:
        steps: List[ConstructionStep] = []
        sequences: Dict[str, str] = {}
        dropped = 0

        for number, line in enumerate(normalize(*blobs).splitlines(), start=1):
            tokens = tokenize(line)
            if not tokens or tokens[0].startswith("#"):
                continue
            try:
                item = classify(tokens)
            except ParseError as e:
                if strict:
                    raise ParseError(line, number, e.reason) from e
                log_message(message_type="cfsim:parser:dropped_line",
                            line=line, line_number=number, reason=e.reason)
                dropped += 1
                continue

            if item is None:
                if strict:
                    raise ParseError(line, number)
                log_message(message_type="cfsim:parser:dropped_line",
                            line=line, line_number=number, reason="unrecognized line")
                dropped += 1
            elif isinstance(item, tuple):
                name, sequence = item
                if name in sequences:
                    log_message(message_type="cfsim:parser:redefined_sequence",
                                name=name, line_number=number)
                sequences[name] = sequence
            else:
                steps.append(item)

        action.add_success_fields(steps=len(steps), sequences=len(sequences), dropped=dropped)
        return ConstructionFile(steps=steps, sequences=sequences)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def _step_tokens(step: ConstructionStep) -> List[str]:
    if isinstance(step, PCR):
        size = [str(step.product_size)] if step.product_size is not None else []
        return ["PCR", step.forward_oligo, step.reverse_oligo, step.template] + size + [step.output]
    if isinstance(step, Digest):
        return ["Digest", step.dna] + step.enzymes + [str(step.frag_select), step.output]
    if isinstance(step, Ligate):
        return ["Blunt" if step.blunt else "Ligate"] + step.dnas + [step.output]
    if isinstance(step, Assemble):
        if step.is_gibson:
            return ["Gibson"] + step.dnas + [step.output]
        return ["Assemble"] + step.dnas + [step.enzyme, step.output]
    if isinstance(step, Transform):
        temperature = [f"{step.temperature:g}"] if step.temperature is not None else []
        return ["Transform", step.dna, step.strain] + step.antibiotics + temperature + [step.output]
    raise TypeError(f"Cannot serialize step {step!r}")


def serialize(cf: ConstructionFile) -> str:
    """Write a ConstructionFile as tab-separated CF text."""
    lines = ["\t".join(_step_tokens(step)) for step in cf.steps]
    lines.extend(f"{name}\t{sequence}" for name, sequence in cf.sequences.items())
    return "\n".join(lines) + "\n"


def to_rows(cf: ConstructionFile) -> List[List[str]]:
    """The same content as serialize(), one list of cells per line."""
    rows = [_step_tokens(step) for step in cf.steps]
    rows.extend([name, sequence] for name, sequence in cf.sequences.items())
    return rows
