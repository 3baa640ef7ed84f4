from __future__ import annotations

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.orders.constants import STATUS_FLOW
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO, ShippingDTO
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService

CATALOG = [
    ("SKU-101", "Cotton Kurta", Decimal("799")),
    ("SKU-102", "Denim Jacket", Decimal("2499")),
    ("SKU-103", "Running Shoes", Decimal("3199")),
    ("SKU-104", "Leather Wallet", Decimal("649")),
    ("SKU-105", "Analog Watch", Decimal("4599")),
    ("SKU-106", "Silk Saree", Decimal("5299")),
    ("SKU-107", "Sunglasses", Decimal("1199")),
    ("SKU-108", "Backpack", Decimal("1499")),
]

CUSTOMERS = [
    ("Aarav Sharma", "9876543210", "Pune", "Maharashtra", "411001"),
    ("Diya Patel", "9123456780", "Ahmedabad", "Gujarat", "380001"),
    ("Kabir Singh", "9988776655", "Chandigarh", "Punjab", "160017"),
    ("Meera Iyer", "9445566778", "Chennai", "Tamil Nadu", "600004"),
    ("Rohan Das", "9830012345", "Kolkata", "West Bengal", "700019"),
    ("Sara Khan", "9700011122", "Hyderabad", "Telangana", "500034"),
]

COUPONS = [None, None, None, "SAVE10", "FLAT500", "FREESHIP"]


class Command(BaseCommand):
    help = "Seed database with storefront orders in every delivery status."

    def add_arguments(self, parser):
        parser.add_argument("--orders", type=int, default=30)

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        admin = self._seed_users()
        created = self._seed_orders(admin, options["orders"])

        self.stdout.write(self.style.SUCCESS(f"Seed completed: orders={created}"))

    def _seed_users(self):
        User = get_user_model()
        if not User.objects.filter(username="customer").exists():
            User.objects.create_user("customer", password="customer123")
        admin = User.objects.filter(username="admin").first()
        if admin is None:
            admin = User.objects.create_superuser("admin", password="admin123")
        return admin

    def _seed_orders(self, admin, count: int) -> int:
        service = OrderService(order_repository=OrderDjangoRepository())
        created_count = 0

        for i in range(count):
            name, phone, city, state, pincode = random.choice(CUSTOMERS)
            lines = random.sample(CATALOG, k=random.randint(1, 3))
            dto = CreateOrderDTO(
                items=[
                    CreateOrderItemDTO(
                        product_id=sku,
                        title=title,
                        unit_price=price,
                        quantity=random.randint(1, 2),
                    )
                    for sku, title, price in lines
                ],
                shipping=ShippingDTO(
                    full_name=name,
                    phone=phone,
                    address=f"{random.randint(1, 250)} MG Road",
                    city=city,
                    state=state,
                    pincode=pincode,
                ),
                coupon_code=random.choice(COUPONS),
                idempotency_key=f"seed-order-{i + 1}",
            )
            order, created = service.create_order(dto)
            if not created:
                continue
            created_count += 1

            for _ in range(random.randrange(len(STATUS_FLOW))):
                service.advance(str(order.id), admin)

        return created_count
