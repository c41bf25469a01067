"""Shared pytest fixtures for treefilter tests."""

import json
from pathlib import Path

import pytest

from treefilter.models.test_node import TestNode


@pytest.fixture
def project_root():
    """Return the project root directory."""
    return Path(__file__).parent.parent


def _leaf(uid, name, namespace="MyModule", type_name="MathTests", **properties):
    return {
        "uid": uid,
        "display_name": name,
        "properties": properties,
        "method_identifier": {
            "namespace": namespace,
            "type_name": type_name,
            "method_name": name,
        },
    }


@pytest.fixture
def tree_data():
    """A small discovered test tree as plain data.

    MyModule
      MathTests
        Adds          Category=Fast
        Subtracts     Category=Slow, Category=Math
        Divides/Zero  (no properties)
      StringTests
        Concat        Category=Fast, Owner=ci
    """
    return [
        {
            "uid": "MyModule",
            "display_name": "MyModule",
            "children": [
                {
                    "uid": "MyModule.MathTests",
                    "display_name": "MathTests",
                    "children": [
                        _leaf("MyModule.MathTests.Adds", "Adds", Category="Fast"),
                        _leaf(
                            "MyModule.MathTests.Subtracts",
                            "Subtracts",
                            Category=["Slow", "Math"],
                        ),
                        _leaf("MyModule.MathTests.DividesZero", "Divides/Zero"),
                    ],
                },
                {
                    "uid": "MyModule.StringTests",
                    "display_name": "StringTests",
                    "children": [
                        _leaf(
                            "MyModule.StringTests.Concat",
                            "Concat",
                            type_name="StringTests",
                            Category="Fast",
                            Owner="ci",
                        ),
                    ],
                },
            ],
        }
    ]


@pytest.fixture
def tree(tree_data):
    """The sample tree as TestNode roots."""
    return [TestNode.model_validate(obj) for obj in tree_data]


@pytest.fixture
def leaves(tree):
    """The runnable leaves of the sample tree, in breadth-first order."""
    math_tests, string_tests = tree[0].children
    return [*math_tests.children, *string_tests.children]


@pytest.fixture
def nodes_file(tmp_path, tree_data):
    """The sample tree written as a JSON export."""
    f = tmp_path / "tests.json"
    f.write_text(json.dumps({"nodes": tree_data}))
    return f


# Pytest markers
def pytest_configure(config):
    config.addinivalue_line("markers", "slow: mark test as slow running")
