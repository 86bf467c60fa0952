"""Pytest configuration for tests.

No sys.path hacks - tests should import from installed schemasmith package.
Host model classes live in the test modules themselves (at module level, so
their annotations resolve); only build plumbing is shared here.
"""

import pytest

from schemasmith.kernel.context import BuildContext
from schemasmith.kernel.discovery import AnnotatedResolverBuilder, PublicResolverBuilder
from schemasmith.kernel.environment import GlobalEnvironment
from schemasmith.kernel.interfaces import AbstractInterfaceStrategy
from schemasmith.kernel.mappers import TypeMapperRepository, default_mappers
from schemasmith.kernel.operations import OperationRepository
from schemasmith.kernel.type_info import TypeInfoGenerator
from schemasmith.kernel.value_mapper import PydanticValueMapperFactory


def pytest_addoption(parser):
    """Add gated perf test option."""
    parser.addoption(
        "--run-perf",
        action="store_true",
        default=False,
        help="Run build performance sentinels (gated)."
    )


def pytest_collection_modifyitems(config, items):
    """Skip perf-marked tests unless --run-perf is set."""
    if config.getoption("--run-perf"):
        return
    skip_perf = pytest.mark.skip(reason="perf tests gated; pass --run-perf")
    for item in items:
        if "perf" in item.keywords:
            item.add_marker(skip_perf)


@pytest.fixture
def make_context():
    """Factory for a fresh BuildContext; every call is an independent build."""
    def factory(sources=(), known_types=(), interface_strategy=None, base_packages=()):
        type_info = TypeInfoGenerator()
        return BuildContext(
            operation_repository=OperationRepository(
                list(sources),
                [AnnotatedResolverBuilder()],
                [PublicResolverBuilder()],
                base_packages=tuple(base_packages),
            ),
            type_mappers=TypeMapperRepository(default_mappers()),
            environment=GlobalEnvironment(),
            interface_strategy=interface_strategy or AbstractInterfaceStrategy(),
            base_packages=tuple(base_packages),
            type_info_generator=type_info,
            value_mapper_factory=PydanticValueMapperFactory(type_info),
            known_types=known_types,
        )
    return factory
