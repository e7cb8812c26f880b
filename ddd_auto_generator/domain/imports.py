"""
Explicit import accumulation for generated modules.

Each synthesizer receives an :class:`ImportSet`, records what the code it
builds needs, and the module is rendered with the merged set exactly once.
"""

import ast
from typing import Dict, Iterable, List, Optional, Set, Tuple


class ImportSet:
    """
    Imports required by one generated module.

    ``from`` imports are grouped by module; names under a module are sorted
    on render so the output is deterministic regardless of the order in which
    synthesizers registered them. Imports registered with ``type_checking``
    are rendered inside an ``if TYPE_CHECKING:`` block.
    """

    def __init__(self):
        self._modules: Set[str] = set()
        self._from_imports: Dict[str, Set[str]] = {}
        self._type_checking: Dict[str, Set[str]] = {}

    def add(self, module: str, *names: str, type_checking: bool = False) -> "ImportSet":
        """Record ``from module import names`` (or ``import module`` when no names)."""
        if not names:
            self._modules.add(module)
            return self
        target = self._type_checking if type_checking else self._from_imports
        target.setdefault(module, set()).update(names)
        return self

    def merge(self, other: "ImportSet") -> "ImportSet":
        """Return a new set holding the imports of both sets."""
        merged = ImportSet()
        for source in (self, other):
            merged._modules.update(source._modules)
            for module, names in source._from_imports.items():
                merged._from_imports.setdefault(module, set()).update(names)
            for module, names in source._type_checking.items():
                merged._type_checking.setdefault(module, set()).update(names)
        return merged

    def __contains__(self, item: Tuple[str, str]) -> bool:
        module, name = item
        return name in self._from_imports.get(module, ()) or name in self._type_checking.get(module, ())

    def __bool__(self) -> bool:
        return bool(self._modules or self._from_imports or self._type_checking)

    def names(self) -> List[str]:
        """All imported names, sorted."""
        found: Set[str] = set()
        for names in list(self._from_imports.values()) + list(self._type_checking.values()):
            found.update(names)
        return sorted(found)

    def _from_import_nodes(self, imports: Dict[str, Set[str]]) -> List[ast.stmt]:
        # Standard library and typing first, then absolute project modules
        def sort_key(module: str) -> Tuple[int, str]:
            return (0 if "." not in module else 1, module)

        nodes: List[ast.stmt] = []
        for module in sorted(imports, key=sort_key):
            # Leading dots mark a relative import
            target = module.lstrip(".")
            nodes.append(
                ast.ImportFrom(
                    module=target or None,
                    names=[ast.alias(name=name, asname=None) for name in sorted(imports[module])],
                    level=len(module) - len(target),
                    lineno=1,
                    col_offset=0,
                )
            )
        return nodes

    def to_ast(self) -> List[ast.stmt]:
        """Render the set as import statements."""
        from_imports = {module: set(names) for module, names in self._from_imports.items()}
        type_checking = {
            module: names - from_imports.get(module, set())
            for module, names in self._type_checking.items()
        }
        type_checking = {module: names for module, names in type_checking.items() if names}
        if type_checking:
            from_imports.setdefault("typing", set()).add("TYPE_CHECKING")

        nodes: List[ast.stmt] = [
            ast.Import(names=[ast.alias(name=module, asname=None)], lineno=1, col_offset=0)
            for module in sorted(self._modules)
        ]
        nodes.extend(self._from_import_nodes(from_imports))

        if type_checking:
            nodes.append(
                ast.If(
                    test=ast.Name(id="TYPE_CHECKING", ctx=ast.Load(), lineno=1, col_offset=0),
                    body=self._from_import_nodes(type_checking),
                    orelse=[],
                    lineno=1,
                    col_offset=0,
                )
            )
        return nodes

    @classmethod
    def of(cls, entries: Iterable[Tuple[str, Iterable[str]]], type_checking: Optional[bool] = False) -> "ImportSet":
        imports = cls()
        for module, names in entries:
            imports.add(module, *names, type_checking=bool(type_checking))
        return imports
