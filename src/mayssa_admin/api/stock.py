from fastapi import APIRouter, Depends

from ..catalog import Catalog, get_catalog
from ..dependencies import get_stock
from ..schemas import CategoryReset, StockAdjust, StockRead, StockSet
from ..stock import StockLedger, Tracked

router = APIRouter(prefix="/stock", tags=["stock"])


def _read(item_id: str, level) -> StockRead:
    quantity = level.quantity if isinstance(level, Tracked) else None
    return StockRead(item_id=item_id, tracked=level.tracked, quantity=quantity)


@router.get("", response_model=list[StockRead])
def list_stock(stock: StockLedger = Depends(get_stock)) -> list[StockRead]:
    return [StockRead(item_id=item_id, tracked=True, quantity=qty) for item_id, qty in stock.snapshot().items()]


@router.post("/reset", response_model=list[StockRead])
def reset_category(
    payload: CategoryReset,
    stock: StockLedger = Depends(get_stock),
    catalog: Catalog = Depends(get_catalog),
) -> list[StockRead]:
    reset = stock.reset_category(catalog, payload.category, payload.quantity)
    stock.commit()
    return [StockRead(item_id=item_id, tracked=True, quantity=qty) for item_id, qty in reset.items()]


@router.get("/{item_id}", response_model=StockRead)
def get_stock_level(item_id: str, stock: StockLedger = Depends(get_stock)) -> StockRead:
    return _read(item_id, stock.level(item_id))


@router.put("/{item_id}", response_model=StockRead)
def set_stock(item_id: str, payload: StockSet, stock: StockLedger = Depends(get_stock)) -> StockRead:
    level = stock.set_absolute(item_id, payload.quantity)
    stock.commit()
    return _read(item_id, level)


@router.post("/{item_id}/adjust", response_model=StockRead)
def adjust_stock(item_id: str, payload: StockAdjust, stock: StockLedger = Depends(get_stock)) -> StockRead:
    level = stock.adjust(item_id, payload.delta)
    stock.commit()
    return _read(item_id, level)


@router.delete("/{item_id}", response_model=StockRead)
def untrack_stock(item_id: str, stock: StockLedger = Depends(get_stock)) -> StockRead:
    stock.disable_tracking(item_id)
    stock.commit()
    return StockRead(item_id=item_id, tracked=False, quantity=None)
