from __future__ import annotations

from logicmap.lowering.statements import SKIP, Stmt
from logicmap.lowering.tree_sitter_base import TreeSitterAdapter


class CSharpAdapter(TreeSitterAdapter):
    SKIP_TYPES = {"using_directive", "extern_alias_directive", "empty_statement", "attribute_list"}
    BLOCK_TYPES = {"compilation_unit", "block", "declaration_list", "enum_member_declaration_list"}
    WRAPPER_TYPES = {"global_statement", "labeled_statement"}
    LOOP_TYPES = {"while_statement", "foreach_statement"}
    SWITCH_GROUP_TYPES = {"switch_section"}
    RESOURCE_TYPES = {"using_statement", "lock_statement"}
    FUNCTION_TYPES = {
        "method_declaration",
        "constructor_declaration",
        "destructor_declaration",
        "local_function_statement",
        "operator_declaration",
    }
    CLASS_TYPES = {
        "class_declaration",
        "interface_declaration",
        "struct_declaration",
        "record_declaration",
        "enum_declaration",
        "namespace_declaration",
        "file_scoped_namespace_declaration",
    }

    def convert(self, node) -> Stmt:
        if node.type.startswith("preproc"):
            return SKIP
        return super().convert(node)

    def convert_resource(self, node) -> Stmt:
        stmt = super().convert_resource(node)
        if node.type == "lock_statement":
            stmt.close_label = "End Lock"
        return stmt
