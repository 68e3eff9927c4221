import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


def build_shop(tmp_path: Path, name: str = "shop.db", signed_up: bool = True, **settings):
    from shopledger.application.container import build_container
    from shopledger.config import Settings

    shop = build_container(tmp_path / name, Settings(**settings))
    if signed_up:
        shop.profiles.ensure_profile("Sara", "sara@example.com", "Corner Shop")
    return shop


def stock_product(shop, stock: int = 8, threshold: int = 10, purchase: float = 150.0, sale: float = 185.0, vendor_id=None):
    return shop.inventory.add_product("Cooking Oil 1L", "OIL-102", purchase, sale, stock, threshold, vendor_id=vendor_id)
