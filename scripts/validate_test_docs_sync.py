#!/usr/bin/env python3
"""
Check that docs/test_scenarios_business_summary.md matches tests/test_integration_scenarios.py.

Reports:
1. Scenario classes or methods missing from the business summary (errors)
2. Documented scenarios that no longer exist in the test file (warnings)

Run: python scripts/validate_test_docs_sync.py
"""

import re
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
SCENARIO_FILE = PROJECT_ROOT / 'tests' / 'test_integration_scenarios.py'
SUMMARY_FILE = PROJECT_ROOT / 'docs' / 'test_scenarios_business_summary.md'

CLASS_RE = re.compile(r'^class (Test\w+)')
METHOD_RE = re.compile(r'^\s+def (test_\w+)')
DOC_CLASS_RE = re.compile(r'\*\*Test Class\*\*:\s*`(Test\w+)`')
DOC_METHOD_RE = re.compile(r'\*\*Test Method\*\*:\s*`(test_\w+)`')


def scenario_tests(test_file: Path) -> dict[str, list[str]]:
    """Map each scenario class in the test file to its test methods."""
    scenarios = {}
    current = None

    for line in test_file.read_text(encoding='utf-8').splitlines():
        class_match = CLASS_RE.match(line)
        if class_match:
            current = class_match.group(1)
            scenarios[current] = []
            continue

        if current:
            method_match = METHOD_RE.match(line)
            if method_match:
                scenarios[current].append(method_match.group(1))

    return scenarios


def documented_tests(doc_file: Path) -> tuple[set[str], set[str]]:
    """Class and method names referenced by the business summary."""
    content = doc_file.read_text(encoding='utf-8')
    return set(DOC_CLASS_RE.findall(content)), set(DOC_METHOD_RE.findall(content))


def sync_issues(test_file: Path, doc_file: Path) -> tuple[list[str], list[str]]:
    """Return (errors, warnings) describing drift between tests and summary."""
    scenarios = scenario_tests(test_file)
    doc_classes, doc_methods = documented_tests(doc_file)
    methods = {m for names in scenarios.values() for m in names}

    errors = [f"Undocumented scenario class: {c}" for c in set(scenarios) - doc_classes]
    errors += [f"Undocumented scenario method: {m}" for m in methods - doc_methods]
    warnings = [f"Documented class no longer tested: {c}" for c in doc_classes - set(scenarios)]
    warnings += [f"Documented method no longer tested: {m}" for m in doc_methods - methods]

    return sorted(errors), sorted(warnings)


def main():
    for path in (SCENARIO_FILE, SUMMARY_FILE):
        if not path.exists():
            print(f"❌ File not found: {path}")
            sys.exit(1)

    scenarios = scenario_tests(SCENARIO_FILE)
    doc_classes, doc_methods = documented_tests(SUMMARY_FILE)
    errors, warnings = sync_issues(SCENARIO_FILE, SUMMARY_FILE)

    print("=" * 60)
    print("Scenario Summary Sync Check")
    print("=" * 60)
    print(f"\nScenario classes: {len(scenarios)}")
    print(f"Scenario methods: {sum(len(m) for m in scenarios.values())}")
    print(f"Documented classes: {len(doc_classes)}")
    print(f"Documented methods: {len(doc_methods)}")

    if errors:
        print(f"\n❌ ERRORS ({len(errors)}):")
        for error in errors:
            print(f"   - {error}")

    if warnings:
        print(f"\n⚠️  WARNINGS ({len(warnings)}):")
        for warning in warnings:
            print(f"   - {warning}")

    if not errors and not warnings:
        print("\n✅ Business summary matches the scenario tests")

    print("\nScenarios:")
    for cls, methods in sorted(scenarios.items()):
        print(f"\n  {'✅' if cls in doc_classes else '❌'} {cls}")
        for method in methods:
            print(f"      {'✅' if method in doc_methods else '❌'} {method}")

    sys.exit(1 if errors else 0)


if __name__ == '__main__':
    main()
