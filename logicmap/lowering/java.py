from __future__ import annotations

from logicmap.lowering.statements import Stmt, StmtKind
from logicmap.lowering.tree_sitter_base import TreeSitterAdapter, strip_parens


class JavaAdapter(TreeSitterAdapter):
    SKIP_TYPES = {"import_declaration", "package_declaration", "module_declaration", "marker_annotation"}
    BLOCK_TYPES = {
        "program",
        "block",
        "class_body",
        "interface_body",
        "constructor_body",
        "enum_body",
        "enum_body_declarations",
    }
    LOOP_TYPES = {"while_statement", "enhanced_for_statement"}
    TRY_TYPES = {"try_statement", "try_with_resources_statement"}
    SWITCH_TYPES = {"switch_statement", "switch_expression"}
    SWITCH_GROUP_TYPES = {"switch_block_statement_group", "switch_rule"}
    FUNCTION_TYPES = {"method_declaration", "constructor_declaration", "compact_constructor_declaration"}
    CLASS_TYPES = {"class_declaration", "interface_declaration", "enum_declaration", "record_declaration"}

    def convert_try(self, node) -> Stmt:
        stmt = super().convert_try(node)
        resources = self.field(node, "resources")
        if resources is None:
            return stmt
        res = Stmt(
            StmtKind.RESOURCE,
            self.line(node),
            text=f"Resources: {strip_parens(self.text(resources))}",
            body=stmt.body,
            close_label="Auto-Close Resources",
        )
        if not stmt.handlers and stmt.finalbody is None:
            return res
        stmt.body = [res]
        return stmt
