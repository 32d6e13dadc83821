"""Pytest configuration and fixtures for Blast Radius tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from blastradius.cache import TTLCache
from blastradius.engine import BlastRadiusEngine
from blastradius.graph import DependencyGraphBuilder
from blastradius.resolver import FuzzyPathResolver
from blastradius.sources import InMemoryFileSource, MountedFileSource


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def apps_root() -> Path:
    """Root holding the on-disk sample applications."""
    return Path(__file__).parent / "fixtures" / "sample_app"


@pytest.fixture
def mounted_source(apps_root: Path) -> MountedFileSource:
    return MountedFileSource(root=apps_root)


@pytest.fixture
def shop_files() -> dict:
    """A small mixed front-end / back-end application."""
    return {
        "src/api/apiClient.ts": (
            "import axios from 'axios'\n"
            "export const api = axios.create({ baseURL: '/api' })\n"
            "export function getCart() { return axios.get('/api/cart') }\n"
        ),
        "src/services/cartService.ts": (
            "import { api, getCart } from '../api/apiClient'\n"
            "export async function addItem(id) { return api.post('/cart/items', { id }) }\n"
        ),
        "src/components/CartPanel.vue": (
            "<template>\n  <div><CartRow v-for=\"i in items\" @remove=\"drop\" /></div>\n</template>\n"
            "<script>\nimport { addItem } from '../services/cartService'\n"
            "export default { props: ['items'] }\n</script>\n"
        ),
        "tests/unit/cart.test.ts": (
            "import { addItem } from '../../src/services/cartService'\n"
            "describe('cart', () => { it('adds', () => {}) })\n"
        ),
        "Services/OrderService.cs": "public class OrderService : IOrderService { }\n",
        "Controllers/OrderController.cs": "public class OrderController : ControllerBase { }\n",
        "Repositories/OrderRepository.cs": "public class OrderRepository { }\n",
        "Models/Order.cs": "public class Order { }\n",
        "Integrations/EpicFhirClient.cs": "public class EpicFhirClient { }\n",
        "Messaging/OrderEventPublisher.cs": "public class OrderEventPublisher { }\n",
    }


@pytest.fixture
def memory_source(shop_files: dict) -> InMemoryFileSource:
    return InMemoryFileSource({"shop": shop_files})


@pytest.fixture
def shop_engine(memory_source: InMemoryFileSource) -> BlastRadiusEngine:
    """Engine over the in-memory ``shop`` application, scanning serially."""
    return BlastRadiusEngine(
        source=memory_source,
        resolver=FuzzyPathResolver(memory_source, cache=TTLCache(300)),
        builder=DependencyGraphBuilder(memory_source, cache=TTLCache(300), max_workers=1),
    )


@pytest.fixture
def billing_engine(mounted_source: MountedFileSource) -> BlastRadiusEngine:
    """Engine over the on-disk ``billing`` sample application."""
    return BlastRadiusEngine(source=mounted_source)


@pytest.fixture
def temp_config(temp_dir: Path, monkeypatch) -> Path:
    """Point the config file at a temporary location."""
    config_file = temp_dir / "config.toml"
    monkeypatch.setattr("blastradius.config.BASE_DIR", temp_dir)
    monkeypatch.setattr("blastradius.config.CONFIG_FILE", config_file)
    return config_file
