"""Nord formatter — walks the AST and emits canonical Nord source code.

Parsing the output of ``Formatter(tree).format()`` yields a tree equal to
``tree``.  Parentheses are only added where the grammar needs them.
"""

from __future__ import annotations

from nord.ast_nodes import (
    Expr,
    Opcode,
    Atom,
    Num,
    Boolean,
    String,
    Identifier,
    Constant,
    IfElse,
    Let,
    Array,
    Object,
    Lambda,
    Block,
    BinaryOp,
    UnaryOp,
    Call,
    Index,
    Member,
)
from nord.errors import FormatError


# Binding strength of each binary tier; higher binds tighter.
BINARY_PRECEDENCE: dict[Opcode, int] = {
    Opcode.ASSIGN: 1,
    Opcode.OR: 2,
    Opcode.AND: 3,
    Opcode.EQUAL: 4,
    Opcode.NOT_EQUAL: 4,
    Opcode.LESS: 4,
    Opcode.LESS_EQUAL: 4,
    Opcode.GREATER: 4,
    Opcode.GREATER_EQUAL: 4,
    Opcode.ADD: 5,
    Opcode.SUB: 5,
    Opcode.MUL: 6,
    Opcode.DIV: 6,
    Opcode.MOD: 6,
}
UNARY_PRECEDENCE = 7
POSTFIX_PRECEDENCE = 8
ATOM_PRECEDENCE = 9

# Forms only reachable from a full-expression position.
STATEMENT_FORMS = (IfElse, Let, Array, Object, Lambda, Block)

STRING_ESCAPES: dict[str, str] = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\t": "\\t",
    "\r": "\\r",
}


def precedence(node: Expr) -> int:
    """Return the tier a node occupies; statement forms bind loosest."""
    if isinstance(node, STATEMENT_FORMS):
        return 0
    if isinstance(node, BinaryOp):
        return BINARY_PRECEDENCE[node.op]
    if isinstance(node, UnaryOp):
        return UNARY_PRECEDENCE
    if isinstance(node, (Call, Index, Member)):
        return POSTFIX_PRECEDENCE
    return ATOM_PRECEDENCE


class Formatter:
    """Render a Nord AST as source text."""

    def __init__(self, tree: Expr) -> None:
        self.tree = tree

    def format(self) -> str:
        return self._emit_expr(self.tree)

    # -- Expression emission -----------------------------------------------

    def _emit_expr(self, node: Expr) -> str:
        """Emit a node in a full-expression position."""
        if isinstance(node, Constant):
            return self._emit_atom(node.value, node)
        if isinstance(node, IfElse):
            return self._emit_if(node)
        if isinstance(node, Let):
            return f"let {node.name} = {self._emit_expr(node.value)}"
        if isinstance(node, Array):
            return "[" + ", ".join(self._emit_expr(e) for e in node.elements) + "]"
        if isinstance(node, Object):
            pairs = ", ".join(f"{name}: {self._emit_expr(value)}" for name, value in node.fields)
            return "#{" + pairs + "}"
        if isinstance(node, Lambda):
            return f"fn({node.param or ''}) {self._emit_expr(node.body)}"
        if isinstance(node, Block):
            return self._emit_block(node)
        if isinstance(node, BinaryOp):
            return self._emit_binary(node)
        if isinstance(node, UnaryOp):
            return self._emit_unary(node)
        if isinstance(node, Call):
            arg = "" if node.arg is None else self._emit_expr(node.arg)
            return f"{self._emit_callee(node.callee)}({arg})"
        if isinstance(node, Index):
            return f"{self._emit_callee(node.callee)}[{self._emit_expr(node.index)}]"
        if isinstance(node, Member):
            return f"{self._emit_callee(node.callee)}.{node.field}"

        raise FormatError(
            f"Unsupported node type: {type(node).__name__}",
            getattr(node, "line", 0),
            getattr(node, "col", 0),
        )

    def _emit_operand(self, node: Expr, minimum: int) -> str:
        """Emit *node*, parenthesized when it binds looser than *minimum*."""
        text = self._emit_expr(node)
        if precedence(node) < minimum:
            return f"({text})"
        return text

    def _emit_binary(self, node: BinaryOp) -> str:
        # Every tier is left-associative, so an equal-tier right operand
        # needs parentheses and an equal-tier left operand does not.
        tier = BINARY_PRECEDENCE[node.op]
        left = self._emit_operand(node.left, tier)
        right = self._emit_operand(node.right, tier + 1)
        return f"{left} {node.op.symbol} {right}"

    def _emit_unary(self, node: UnaryOp) -> str:
        operand = self._emit_operand(node.operand, UNARY_PRECEDENCE)
        if node.op == Opcode.NEG and operand.startswith("-"):
            return f"- {operand}"
        return f"{node.op.symbol}{operand}"

    def _emit_callee(self, node: Expr) -> str:
        return self._emit_operand(node, POSTFIX_PRECEDENCE)

    def _emit_body(self, block: Block) -> str:
        return "; ".join(self._emit_expr(e) for e in block.body)

    def _emit_block(self, node: Block) -> str:
        if not node.body:
            return "block end"
        return f"block {self._emit_body(node)} end"

    def _emit_if(self, node: IfElse) -> str:
        parts = [f"if {self._emit_expr(node.cond)} then"]
        if node.then_branch.body:
            parts.append(self._emit_body(node.then_branch))
        if node.else_branch is not None:
            parts.append("else")
            if node.else_branch.body:
                parts.append(self._emit_body(node.else_branch))
        parts.append("end")
        return " ".join(parts)

    def _emit_atom(self, atom: Atom, owner: Expr) -> str:
        if isinstance(atom, Boolean):
            return "true" if atom.value else "false"
        if isinstance(atom, Num):
            return str(atom.value)
        if isinstance(atom, String):
            return '"' + "".join(STRING_ESCAPES.get(ch, ch) for ch in atom.value) + '"'
        if isinstance(atom, Identifier):
            return atom.name

        raise FormatError(f"Unsupported atom type: {type(atom).__name__}", owner.line, owner.col)


def format_expr(tree: Expr) -> str:
    return Formatter(tree).format()
