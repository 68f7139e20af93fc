"""Decides where a blank line belongs before return and branch statements."""
from typing import List

from configuration import FormatterConfig
from results import ChangeEntry
from syntax_tree import BlankLineMarker, Block, Statement, SyntaxTree


def should_insert(block: Block, index: int, config: FormatterConfig) -> bool:
    """
    Return True when the exit statement at ``index`` needs a blank line before it.

    The statement must not open its block, the block must be long enough under the
    configured policy, and the statement must directly follow its predecessor
    (an existing blank line or comment in between is left alone).
    """
    statement = block[index]
    if index == 0 or not isinstance(statement, Statement) or not statement.is_exit:
        return False

    previous = block[index - 1]
    if isinstance(previous, BlankLineMarker):
        return False

    if config.block_size_policy == "statements":
        if _is_alone_in_block(block, index, config.block_size):
            return False
    elif statement.start_line - block[0].start_line < config.block_size:
        return False

    return statement.start_line - previous.end_line <= 1


def _is_alone_in_block(block: Block, index: int, block_size: int) -> bool:
    siblings = sum(
        1 for i, s in enumerate(block.statements)
        if i != index and isinstance(s, Statement) and s.node_type != "empty_statement"
    )
    return siblings <= block_size


def process_block(tree: SyntaxTree, block: Block, config: FormatterConfig) -> List[ChangeEntry]:
    changes = []
    # Walk from the tail so a splice never shifts a statement that is still undecided.
    for index in range(len(block) - 1, 0, -1):
        if not should_insert(block, index, config):
            continue

        target = block[index]
        block.splice_before(index, BlankLineMarker(target=target, predecessor=block[index - 1]))
        position = tree.position_of(target)
        changes.append(ChangeEntry(kind=target.name, unit=position.unit, line=position.line, column=position.column))

    changes.reverse()
    return changes


def apply(tree: SyntaxTree, config: FormatterConfig) -> List[ChangeEntry]:
    """Insert blank line markers across every block of ``tree``; return the change log in source order."""
    changes = []
    for block in tree.blocks():
        changes.extend(process_block(tree, block, config))

    changes.sort(key=lambda c: (c.line, c.column))
    return changes
