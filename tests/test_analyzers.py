"""
Tests for the language analyzers.
"""
import os
import tempfile
import unittest

from repokg.core.entities import LanguageType, NodeType
from repokg.core.errors import ParseError, UnsupportedLanguageError
from repokg.parsers import AnalyzerFactory, PythonAnalyzer, TypeScriptAnalyzer


class AnalyzerTestCase(unittest.TestCase):
    """Writes sources into a temporary directory and analyzes them."""

    analyzer_class = None

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.analyzer = self.analyzer_class()

    def tearDown(self):
        self.tmpdir.cleanup()

    def analyze(self, source, filename):
        path = os.path.join(self.tmpdir.name, filename)
        with open(path, "w") as f:
            f.write(source)
        return self.analyzer.analyze(path)

    def entity(self, entities, name):
        matches = [e for e in entities if e.name == name]
        self.assertEqual(len(matches), 1, f"expected one entity named {name}")
        return matches[0]


class TestTypeScriptAnalyzer(AnalyzerTestCase):
    """Test cases for TypeScript and JavaScript sources."""

    analyzer_class = TypeScriptAnalyzer

    def test_file_entity_comes_first(self):
        entities = self.analyze("export function noop() {}\n", "noop.ts")
        self.assertEqual(entities[0].type, NodeType.FILE)
        self.assertEqual(entities[0].name, "noop.ts")
        self.assertEqual(entities[0].properties.line_count, 1)

    def test_straight_line_function_has_complexity_one(self):
        entities = self.analyze("function add(a: number, b: number) { return a + b; }\n", "add.ts")
        add = self.entity(entities, "add")
        self.assertEqual(add.type, NodeType.FUNCTION)
        self.assertEqual(add.cyclomatic_complexity, 1)
        self.assertEqual(add.cognitive_complexity, 0)

    def test_if_and_logical_operator_add_one_each(self):
        source = """
function one(a: boolean) {
  if (a) {
    return 1;
  }
  return 0;
}

function two(a: boolean, b: boolean) {
  if (a && b) {
    return 1;
  }
  return 0;
}
"""
        entities = self.analyze(source, "branches.ts")
        self.assertEqual(self.entity(entities, "one").cyclomatic_complexity, 2)
        self.assertEqual(self.entity(entities, "two").cyclomatic_complexity, 3)
        self.assertEqual(self.entity(entities, "one").cognitive_complexity, 1)
        self.assertEqual(self.entity(entities, "two").cognitive_complexity, 2)

    def test_nested_if_is_weighted_by_nesting(self):
        source = """
function nested(a: boolean, b: boolean) {
  if (a) {
    if (b) {
      return 1;
    }
  }
  return 0;
}
"""
        nested = self.entity(self.analyze(source, "nested.ts"), "nested")
        self.assertEqual(nested.cyclomatic_complexity, 3)
        self.assertEqual(nested.cognitive_complexity, 3)

    def test_else_if_stays_at_same_nesting(self):
        source = """
function grade(score: number) {
  if (score > 90) {
    return 'A';
  } else if (score > 80) {
    return 'B';
  } else {
    return 'C';
  }
}
"""
        grade = self.entity(self.analyze(source, "grade.ts"), "grade")
        self.assertEqual(grade.cyclomatic_complexity, 3)
        self.assertEqual(grade.cognitive_complexity, 2)

    def test_nested_named_function_is_not_counted_by_parent(self):
        source = """
function outer(a: boolean) {
  const inner = (b: boolean) => {
    if (b) { return 1; }
    return 0;
  };
  return inner(a);
}
"""
        entities = self.analyze(source, "outer.ts")
        self.assertEqual(self.entity(entities, "outer").cyclomatic_complexity, 1)
        inner = self.entity(entities, "inner")
        self.assertEqual(inner.cyclomatic_complexity, 2)
        self.assertTrue(inner.properties.is_arrow)

    def test_anonymous_callback_counts_toward_enclosing_function(self):
        source = """
function logAll(xs: string[]) {
  xs.forEach(v => {
    if (v) { console.log(v); }
  });
}
"""
        entities = self.analyze(source, "callbacks.ts")
        log_all = self.entity(entities, "logAll")
        self.assertEqual(log_all.cyclomatic_complexity, 2)
        self.assertEqual(log_all.cognitive_complexity, 1)
        self.assertEqual([e.name for e in entities if e.type == NodeType.FUNCTION], ["logAll"])

    def test_class_heritage_and_members(self):
        source = """
export class Repository extends Base implements Store, Disposable {
  private static instance: Repository;
  name: string = 'repo';

  private constructor() {
    super();
  }

  static getInstance(): Repository {
    if (!Repository.instance) {
      Repository.instance = new Repository();
    }
    return Repository.instance;
  }

  save(item: string): void {}
}
"""
        entities = self.analyze(source, "repository.ts")
        repo = self.entity(entities, "Repository")
        self.assertEqual(repo.type, NodeType.CLASS)
        self.assertEqual(repo.properties.extends, ["Base"])
        self.assertEqual(repo.properties.implements, ["Store", "Disposable"])
        self.assertEqual(repo.properties.methods, ["constructor", "getInstance", "save"])
        self.assertIn("instance", repo.properties.field_names)
        self.assertIn("getInstance", repo.properties.static_members)
        self.assertTrue(repo.properties.has_private_constructor)
        self.assertTrue(repo.properties.is_exported)
        # 1 + 2 + 1 over the three methods
        self.assertEqual(repo.cyclomatic_complexity, 4)

        save = self.entity(entities, "save")
        self.assertTrue(save.properties.is_method)
        self.assertEqual(save.properties.parent_class, "Repository")
        self.assertTrue(save.properties.qualified_name.endswith("repository.ts::Repository.save"))

    def test_interface(self):
        source = """
interface Shape extends Named {
  area(): number;
  sides: number;
}
"""
        shape = self.entity(self.analyze(source, "shape.ts"), "Shape")
        self.assertEqual(shape.type, NodeType.INTERFACE)
        self.assertEqual(shape.properties.extends, ["Named"])
        self.assertEqual(shape.properties.members, ["area", "sides"])
        self.assertFalse(shape.properties.is_exported)

    def test_jsdoc_parameters_and_return_type(self):
        source = """
/** Adds two numbers. */
export function add(a: number, b = 2): number {
  return a + b;
}
"""
        entities = self.analyze(source, "math.ts")
        add = self.entity(entities, "add")
        self.assertEqual(add.properties.docstring, "Adds two numbers.")
        self.assertEqual(add.properties.return_type, "number")
        self.assertEqual([p.name for p in add.properties.parameters], ["a", "b"])
        self.assertEqual(add.properties.parameters[0].type, "number")
        self.assertTrue(add.properties.parameters[1].has_default)
        self.assertTrue(add.properties.is_exported)
        self.assertIsNone(entities[0].properties.docstring)

    def test_hook_detection(self):
        source = """
export function useCounter(initial: number) {
  const [count, setCount] = useState(initial);
  useEffect(() => {}, [count]);
  return count;
}
"""
        hook = self.entity(self.analyze(source, "useCounter.ts"), "useCounter")
        self.assertEqual(hook.type, NodeType.HOOK)
        self.assertEqual(hook.properties.hook_type, "custom")
        self.assertEqual(hook.properties.dependencies, ["useState", "useEffect"])

    def test_functional_component(self):
        source = """
export const Button = (props: ButtonProps) => {
  const [pressed, setPressed] = useState(false);
  return <button onClick={() => setPressed(true)}>{props.label}</button>;
};
"""
        entities = self.analyze(source, "Button.tsx")
        button = self.entity(entities, "Button")
        self.assertEqual(button.type, NodeType.COMPONENT)
        self.assertEqual(button.properties.component_type, "functional")
        self.assertTrue(button.properties.has_props)
        self.assertTrue(button.properties.has_state)
        self.assertFalse(button.properties.has_effects)
        self.assertTrue(button.properties.is_exported)
        self.assertFalse(any(e.type == NodeType.VARIABLE for e in entities))

    def test_class_component(self):
        source = """
class App extends React.Component<Props> {
  componentDidMount() {
    this.setState({ ready: true });
  }

  render() {
    return <div />;
  }
}
"""
        app = self.entity(self.analyze(source, "App.tsx"), "App")
        self.assertEqual(app.type, NodeType.COMPONENT)
        self.assertEqual(app.properties.component_type, "class")
        self.assertTrue(app.properties.has_state)
        self.assertTrue(app.properties.has_lifecycle_methods)
        self.assertEqual(app.properties.extends, ["React.Component"])

    def test_imports_and_exports(self):
        source = """
import React, { useState, useEffect } from 'react';
import * as utils from './utils';

export const VERSION = '1.0';
export { helper } from './helper';
export default function main() {}
"""
        entities = self.analyze(source, "index.ts")
        file_props = entities[0].properties
        react, local = file_props.imports
        self.assertEqual(react.module, "react")
        self.assertEqual(react.default, "React")
        self.assertEqual(react.specifiers, ["useState", "useEffect"])
        self.assertEqual(local.namespace, "utils")
        self.assertEqual(local.line, 3)

        export_types = [(e.type, e.name) for e in file_props.exports]
        self.assertIn(("variable", "VERSION"), export_types)
        self.assertIn(("default", "main"), export_types)
        named = [e for e in file_props.exports if e.type == "named"][0]
        self.assertEqual(named.module, "./helper")
        self.assertEqual(named.specifiers, ["helper"])

        version = self.entity(entities, "VERSION")
        self.assertEqual(version.type, NodeType.VARIABLE)
        self.assertEqual(version.properties.declaration_kind, "const")

    def test_javascript_require(self):
        source = """
const fs = require('fs');

function read(path) {
  return fs.readFileSync(path);
}

module.exports = { read };
"""
        entities = self.analyze(source, "reader.js")
        self.assertEqual(entities[0].language, LanguageType.JAVASCRIPT)
        imports = entities[0].properties.imports
        self.assertEqual(len(imports), 1)
        self.assertEqual(imports[0].module, "fs")
        self.assertEqual(imports[0].default, "fs")
        self.assertFalse(any(e.name == "fs" for e in entities))
        self.assertEqual(self.entity(entities, "read").language, LanguageType.JAVASCRIPT)

    def test_javascript_class_heritage(self):
        source = "class Dog extends Animal {\n  bark() { return 'woof'; }\n}\n"
        dog = self.entity(self.analyze(source, "dog.js"), "Dog")
        self.assertEqual(dog.properties.extends, ["Animal"])

    def test_syntax_error_raises_parse_error(self):
        with self.assertRaises(ParseError) as ctx:
            self.analyze("export class Broken {\n  method( {\n", "broken.ts")
        self.assertTrue(ctx.exception.file_path.endswith("broken.ts"))

    def test_validate_syntax(self):
        self.assertTrue(self.analyzer.validate_syntax("const a = 1;"))
        self.assertFalse(self.analyzer.validate_syntax("const = ;"))

    def test_resolve_module(self):
        candidates = self.analyzer.resolve_module("/repo/src/app.ts", "./lib/util")
        self.assertEqual(candidates[0], "/repo/src/lib/util.ts")
        self.assertIn("/repo/src/lib/util/index.ts", candidates)
        self.assertIn("/repo/src/util.ts", self.analyzer.resolve_module("/repo/src/app.ts", "./util.js"))
        self.assertEqual(self.analyzer.resolve_module("/repo/src/app.ts", "react"), [])


class TestPythonAnalyzer(AnalyzerTestCase):
    """Test cases for Python sources."""

    analyzer_class = PythonAnalyzer

    def test_elif_chain(self):
        source = '''
def grade(score):
    """Letter grade for a score."""
    if score > 90:
        return "A"
    elif score > 80:
        return "B"
    else:
        return "C"
'''
        entities = self.analyze(source, "grades.py")
        grade = self.entity(entities, "grade")
        self.assertEqual(grade.type, NodeType.FUNCTION)
        self.assertEqual(grade.properties.docstring, "Letter grade for a score.")
        self.assertEqual(grade.cyclomatic_complexity, 3)
        self.assertEqual(grade.cognitive_complexity, 2)
        self.assertEqual(entities[0].properties.average_complexity, 3.0)

    def test_boolean_operator(self):
        source = "def both(a, b):\n    if a and b:\n        return 1\n    return 0\n"
        both = self.entity(self.analyze(source, "both.py"), "both")
        self.assertEqual(both.cyclomatic_complexity, 3)
        self.assertEqual(both.cognitive_complexity, 2)

    def test_class_with_decorated_methods(self):
        source = '''
from abc import ABC, abstractmethod


class Shape(ABC):
    """A geometric shape."""

    sides = 0

    @abstractmethod
    def area(self):
        ...

    @staticmethod
    def unit(scale: float = 1.0) -> float:
        return scale

    def describe(self, verbose=False):
        return "shape"


class Square(Shape):
    def area(self):
        return 1
'''
        entities = self.analyze(source, "shapes.py")
        shape = self.entity(entities, "Shape")
        self.assertEqual(shape.type, NodeType.CLASS)
        self.assertEqual(shape.properties.docstring, "A geometric shape.")
        self.assertEqual(shape.properties.extends, [])
        self.assertTrue(shape.properties.is_abstract)
        self.assertEqual(shape.properties.methods, ["area", "unit", "describe"])
        self.assertEqual(shape.properties.field_names, ["sides"])
        self.assertIn("unit", shape.properties.static_members)

        square = self.entity(entities, "Square")
        self.assertEqual(square.properties.extends, ["Shape"])
        self.assertFalse(square.properties.is_abstract)

        functions = {(e.properties.parent_class, e.name): e for e in entities if e.type == NodeType.FUNCTION}
        area = functions[("Shape", "area")]
        self.assertTrue(area.properties.is_abstract)
        self.assertTrue(area.properties.is_method)
        self.assertTrue(area.properties.qualified_name.endswith("shapes.py::Shape.area"))

        unit = functions[("Shape", "unit")]
        self.assertTrue(unit.properties.is_static)
        self.assertEqual(unit.properties.return_type, "float")
        self.assertEqual(unit.properties.parameters[0].name, "scale")
        self.assertEqual(unit.properties.parameters[0].type, "float")

        describe = functions[("Shape", "describe")]
        self.assertEqual([p.name for p in describe.properties.parameters], ["verbose"])
        self.assertTrue(describe.properties.parameters[0].has_default)

    def test_protocol_is_interface(self):
        source = "from typing import Protocol\n\n\nclass Closeable(Protocol):\n    def close(self) -> None:\n        ...\n"
        closeable = self.entity(self.analyze(source, "protocols.py"), "Closeable")
        self.assertEqual(closeable.type, NodeType.INTERFACE)
        self.assertEqual(closeable.properties.members, ["close"])

    def test_dunder_all_controls_exports(self):
        source = '__all__ = ["public"]\n\n\ndef public():\n    pass\n\n\ndef other():\n    pass\n'
        entities = self.analyze(source, "api.py")
        self.assertTrue(self.entity(entities, "public").properties.is_exported)
        self.assertFalse(self.entity(entities, "other").properties.is_exported)
        self.assertEqual(entities[0].properties.exports[0].specifiers, ["public"])

    def test_underscore_names_are_private_without_dunder_all(self):
        source = "LIMIT = 10\n_cache = {}\n\n\ndef _helper():\n    pass\n"
        entities = self.analyze(source, "module.py")
        self.assertTrue(self.entity(entities, "LIMIT").properties.is_exported)
        self.assertFalse(self.entity(entities, "_cache").properties.is_exported)
        self.assertFalse(self.entity(entities, "_helper").properties.is_exported)
        self.assertEqual([e.name for e in entities[0].properties.exports], ["LIMIT"])

    def test_generator_and_async(self):
        source = "def numbers():\n    yield 1\n\n\nasync def fetch():\n    return 1\n"
        entities = self.analyze(source, "gen.py")
        self.assertTrue(self.entity(entities, "numbers").properties.is_generator)
        self.assertTrue(self.entity(entities, "fetch").properties.is_async)

    def test_imports(self):
        source = "import os.path as osp\nfrom .models import User, Group as G\nfrom .. import config\n"
        imports = self.analyze(source, "views.py")[0].properties.imports
        self.assertEqual(imports[0].module, "os.path")
        self.assertEqual(imports[0].namespace, "osp")
        self.assertEqual(imports[1].module, ".models")
        self.assertEqual(imports[1].specifiers, ["User", "Group"])
        self.assertEqual(imports[2].module, "..")
        self.assertEqual(imports[2].line, 3)

    def test_module_docstring(self):
        entities = self.analyze('"""Utility helpers."""\n\nVALUE = 1\n', "helpers.py")
        self.assertEqual(entities[0].properties.docstring, "Utility helpers.")

    def test_syntax_error_raises_parse_error(self):
        with self.assertRaises(ParseError):
            self.analyze("def broken(:\n    pass\n", "broken.py")

    def test_resolve_module(self):
        self.assertEqual(
            self.analyzer.resolve_module("/repo/pkg/views.py", ".models"),
            ["/repo/pkg/models.py", "/repo/pkg/models/__init__.py"],
        )
        self.assertEqual(
            self.analyzer.resolve_module("/repo/pkg/sub/views.py", "..core"),
            ["/repo/pkg/core.py", "/repo/pkg/core/__init__.py"],
        )
        self.assertEqual(self.analyzer.resolve_module("/repo/pkg/views.py", "."), ["/repo/pkg/__init__.py"])
        self.assertIn("/repo/pkg/util.py", self.analyzer.resolve_module("/repo/pkg/views.py", "pkg.util"))


class TestAnalyzerFactory(unittest.TestCase):
    """Test cases for the analyzer registry."""

    def test_create_analyzer(self):
        self.assertIsInstance(AnalyzerFactory.create_analyzer("typescript"), TypeScriptAnalyzer)
        self.assertIsInstance(AnalyzerFactory.create_analyzer(LanguageType.PYTHON), PythonAnalyzer)
        js = AnalyzerFactory.create_analyzer("javascript")
        self.assertIsInstance(js, TypeScriptAnalyzer)
        self.assertEqual(js.language, LanguageType.JAVASCRIPT)

    def test_unsupported_language(self):
        with self.assertRaises(UnsupportedLanguageError):
            AnalyzerFactory.create_analyzer("cobol")
        self.assertFalse(AnalyzerFactory.is_language_supported("cobol"))
        self.assertTrue(AnalyzerFactory.is_language_supported("python"))

    def test_detect_language(self):
        self.assertEqual(AnalyzerFactory.detect_language("src/app.tsx"), LanguageType.TYPESCRIPT)
        self.assertEqual(AnalyzerFactory.detect_language("src/app.mjs"), LanguageType.JAVASCRIPT)
        self.assertEqual(AnalyzerFactory.detect_language("tool.py"), LanguageType.PYTHON)
        self.assertIsNone(AnalyzerFactory.detect_language("README.md"))

    def test_supported_languages(self):
        self.assertEqual(
            sorted(AnalyzerFactory.get_supported_languages()),
            ["javascript", "python", "typescript"],
        )


if __name__ == "__main__":
    unittest.main()
