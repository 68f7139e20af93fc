"""Navigable view of parsed Go source, backed by tree-sitter."""
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Tuple, Union

import tree_sitter_go
from tree_sitter import Language, Node, Parser

from errors import ParseError, SerializationError

GO_LANGUAGE = Language(tree_sitter_go.language())

# Constructs that own a statement list.
BLOCK_NODE_TYPES = {"block", "expression_case", "type_case", "default_case", "communication_case"}

# Fields holding case labels rather than statements.
LABEL_FIELDS = {"value", "type", "communication"}

BRANCH_NODE_TYPES = {
    "break_statement": "break",
    "continue_statement": "continue",
    "goto_statement": "goto",
    "fallthrough_statement": "fallthrough",
}


class StatementKind(str, Enum):
    RETURN = "return"
    BRANCH = "branch"
    OTHER = "other"


@dataclass(frozen=True)
class Position:
    unit: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.unit}:{self.line}:{self.column}"


@dataclass(frozen=True)
class Statement:
    """A statement of a block, with 1-based source lines."""
    node_type: str
    kind: StatementKind
    start_line: int
    end_line: int
    start_column: int
    start_byte: int
    end_byte: int

    @property
    def is_exit(self) -> bool:
        return self.kind is not StatementKind.OTHER

    @property
    def name(self) -> str:
        """Keyword of an exit statement (``return``, ``break``, ...)."""
        if self.kind is StatementKind.RETURN:
            return "return"
        return BRANCH_NODE_TYPES.get(self.node_type, "unknown")


@dataclass(frozen=True)
class BlankLineMarker:
    """Zero-width node whose only effect is a rendered blank line before ``target``."""
    target: Statement
    predecessor: Statement


BlockEntry = Union[Statement, BlankLineMarker]


class Block:
    """Ordered statement list owned by one enclosing construct."""

    def __init__(self, owner_type: str, statements: List[Statement]):
        self.owner_type = owner_type
        self.statements: List[BlockEntry] = list(statements)

    def __len__(self) -> int:
        return len(self.statements)

    def __getitem__(self, index: int) -> BlockEntry:
        return self.statements[index]

    @property
    def markers(self) -> List[BlankLineMarker]:
        return [s for s in self.statements if isinstance(s, BlankLineMarker)]

    def splice_before(self, index: int, marker: BlankLineMarker) -> None:
        """Insert ``marker`` at ``index``; entries from ``index`` onwards shift right by one."""
        if not 0 < index < len(self.statements):
            raise IndexError(f"cannot splice a blank line marker at index {index} of a {len(self)}-entry block")
        if self.statements[index] is not marker.target:
            raise ValueError(f"marker target does not match the statement at index {index}")
        self.statements.insert(index, marker)


class SyntaxTree:
    """Parse result of one unit. Never shared between formatting calls."""

    def __init__(self, unit: str, source: bytes, tree):
        self.unit = unit
        self.source = source
        self._tree = tree
        self._blocks: Optional[List[Block]] = None

    @property
    def root(self) -> Node:
        return self._tree.root_node

    def blocks(self) -> List[Block]:
        """Every block of the unit, outermost first, each listed exactly once."""
        if self._blocks is None:
            self._blocks = [_build_block(node) for node in _walk(self.root) if node.type in BLOCK_NODE_TYPES]
        return self._blocks

    def position_of(self, statement: Statement) -> Position:
        return Position(self.unit, statement.start_line, statement.start_column)

    @property
    def modified(self) -> bool:
        return any(block.markers for block in self.blocks())


def parse(unit: str, source: bytes) -> SyntaxTree:
    """Parse Go source; raise ParseError when the source is malformed."""
    parser = Parser(GO_LANGUAGE)
    tree = parser.parse(source)
    if tree.root_node.has_error:
        line, column, message = _first_error(tree.root_node)
        raise ParseError(unit, line, column, message)
    return SyntaxTree(unit, source, tree)


def render(tree: SyntaxTree) -> bytes:
    """Serialize ``tree``: the original bytes plus one blank line per marker."""
    source = tree.source
    splices = []
    for block in tree.blocks():
        for marker in block.markers:
            splices.append(_splice_for(source, marker))

    result = source
    for start, end, replacement in sorted(splices, key=lambda s: s[0], reverse=True):
        result = result[:start] + replacement + result[end:]

    check = Parser(GO_LANGUAGE).parse(result)
    if check.root_node.has_error:
        line, column, message = _first_error(check.root_node)
        raise SerializationError(tree.unit, f"rendered source no longer parses at {line}:{column}: {message}")
    return result


def _walk(node: Node) -> Iterator[Node]:
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def _build_block(node: Node) -> Block:
    return Block(node.type, [_statement(child) for child in _statement_nodes(node)])


def _statement_nodes(node: Node) -> List[Node]:
    for child in node.named_children:
        # Newer grammars wrap the statements of a block or case in a statement_list node.
        if child.type == "statement_list":
            return [c for c in child.named_children if c.type != "comment"]

    statements = []
    for index, child in enumerate(node.children):
        if not child.is_named or child.type == "comment":
            continue
        if node.field_name_for_child(index) in LABEL_FIELDS:
            continue
        statements.append(child)
    return statements


def _statement(node: Node) -> Statement:
    if node.type == "return_statement":
        kind = StatementKind.RETURN
    elif node.type in BRANCH_NODE_TYPES:
        kind = StatementKind.BRANCH
    else:
        kind = StatementKind.OTHER

    return Statement(
        node_type=node.type,
        kind=kind,
        start_line=node.start_point[0] + 1,
        end_line=_end_line(node),
        start_column=node.start_point[1] + 1,
        start_byte=node.start_byte,
        end_byte=node.end_byte,
    )


def _end_line(node: Node) -> int:
    row, column = node.end_point[0], node.end_point[1]
    # end_point is exclusive; a node ending with a newline ends on the previous row.
    if column == 0 and node.end_byte > node.start_byte:
        return row
    return row + 1


def _first_error(root: Node) -> Tuple[int, int, str]:
    for node in _walk(root):
        if node.is_missing:
            return node.start_point[0] + 1, node.start_point[1] + 1, f"missing {node.type}"
        if node.type == "ERROR":
            return node.start_point[0] + 1, node.start_point[1] + 1, "syntax error"
    return root.start_point[0] + 1, root.start_point[1] + 1, "syntax error"


def _splice_for(source: bytes, marker: BlankLineMarker) -> Tuple[int, int, bytes]:
    target = marker.target
    line_start = source.rfind(b"\n", 0, target.start_byte) + 1
    newline = b"\r\n" if source[max(line_start - 2, 0):line_start] == b"\r\n" else b"\n"

    if not source[line_start:target.start_byte].strip():
        return line_start, line_start, newline

    # The exit statement shares its line with its predecessor: break the line first.
    indent_end = line_start
    while indent_end < len(source) and source[indent_end:indent_end + 1] in (b" ", b"\t"):
        indent_end += 1
    indent = source[line_start:indent_end]
    separator = source[marker.predecessor.end_byte:target.start_byte].rstrip(b" \t;")
    return marker.predecessor.end_byte, target.start_byte, separator + newline + newline + indent
