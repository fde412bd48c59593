from fastapi import Request

from services.catalog import ProductCatalog
from services.orders import OrderLedger


def get_catalog(request: Request) -> ProductCatalog:
    return request.app.state.catalog


def get_ledger(request: Request) -> OrderLedger:
    return request.app.state.ledger
