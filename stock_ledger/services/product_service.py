"""
ProductService -- product catalog maintenance.

Responsibility:
    Creates products, changes their descriptive fields and alert threshold,
    and toggles their catalog status.  Never touches current_stock: an
    initial count is recorded by StockLedger as an opening entry movement.

Architecture position:
    Ledger > Services -- imperative shell.  Flush-only (see BaseService).

Failure modes:
    - DuplicateProductCodeError: code already in use.
    - UnknownProductError: product id not found.
    - InvalidMinimumStockError: negative or non-integer threshold.
"""

from uuid import UUID

from sqlalchemy import select

from stock_ledger.domain.stock_rules import validate_minimum_stock
from stock_ledger.domain.values import ProductCategory, ProductStatus
from stock_ledger.exceptions import DuplicateProductCodeError, UnknownProductError
from stock_ledger.logging_config import get_logger
from stock_ledger.models.product import Product
from stock_ledger.services.base import BaseService

logger = get_logger("services.product")

DEFAULT_UNIT = "pcs"


class ProductService(BaseService[Product]):
    """Write-side operations on the product catalog."""

    def get(self, product_id: UUID) -> Product:
        """Load a product regardless of status, or raise UnknownProductError."""
        product = self.session.get(Product, product_id)
        if product is None:
            raise UnknownProductError(str(product_id))
        return product

    def create(
        self,
        code: str,
        name: str,
        category: ProductCategory | str,
        unit: str,
        minimum_stock: int,
        actor: str,
    ) -> Product:
        """
        Create an active product with zero stock.

        Raises:
            DuplicateProductCodeError: if ``code`` is already assigned.
            InvalidMinimumStockError: if ``minimum_stock`` is negative.
            ValueError: if ``category`` is not a known category.
        """
        code = code.strip()
        category = ProductCategory(category)
        validate_minimum_stock(minimum_stock)

        existing = self.session.execute(
            select(Product.id).where(Product.code == code)
        ).scalar_one_or_none()
        if existing is not None:
            raise DuplicateProductCodeError(code)

        product = Product(
            code=code,
            name=name.strip(),
            category=category.value,
            unit=unit.strip() or DEFAULT_UNIT,
            current_stock=0,
            minimum_stock=minimum_stock,
            stock_version=0,
            status=ProductStatus.ACTIVE.value,
            created_by=actor,
        )
        self.session.add(product)
        self.session.flush()

        logger.info(
            "product_created",
            extra={
                "product_id": str(product.id),
                "code": code,
                "category": category.value,
                "minimum_stock": minimum_stock,
            },
        )
        return product

    def update_minimum_stock(
        self, product_id: UUID, minimum_stock: int, actor: str
    ) -> Product:
        validate_minimum_stock(minimum_stock)
        product = self.get(product_id)
        previous = product.minimum_stock
        product.minimum_stock = minimum_stock
        product.updated_by = actor
        self.session.flush()
        logger.info(
            "product_minimum_stock_changed",
            extra={
                "product_id": str(product_id),
                "previous": previous,
                "minimum_stock": minimum_stock,
            },
        )
        return product

    def update_details(
        self,
        product_id: UUID,
        actor: str,
        name: str | None = None,
        unit: str | None = None,
    ) -> Product:
        """
        Rename a product or change its unit.

        Code and stock never change here.  A blank unit falls back to
        DEFAULT_UNIT, as on create.
        """
        product = self.get(product_id)
        if name is not None:
            product.name = name.strip()
        if unit is not None:
            product.unit = unit.strip() or DEFAULT_UNIT
        product.updated_by = actor
        self.session.flush()
        return product

    def set_status(
        self, product_id: UUID, status: ProductStatus, actor: str
    ) -> Product:
        """Deactivate or reactivate a product. Products are never deleted."""
        product = self.get(product_id)
        if product.status != status:
            product.status = status.value
            product.updated_by = actor
            self.session.flush()
            logger.info(
                "product_status_changed",
                extra={"product_id": str(product_id), "status": status.value},
            )
        return product
