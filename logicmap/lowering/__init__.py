from logicmap.lowering.imperative import ImperativeLowering
from logicmap.lowering.statements import Case, Handler, Stmt, StmtKind

__all__ = ["ImperativeLowering", "Case", "Handler", "Stmt", "StmtKind"]
