from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from paylink.models import Product, User


class SqlCatalog:
    """Read-only seller/product lookups used to resolve payment links."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def resolve_user(self, unique_name: str):
        result = await self.session.execute(select(User).where(User.unique_name == unique_name))
        return result.scalars().first()

    async def resolve_product(self, seller_id: str, slug: str):
        result = await self.session.execute(
            select(Product).where(Product.user_id == seller_id, Product.slug == slug)
        )
        return result.scalars().first()
