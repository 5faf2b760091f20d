"""
Seed script: populate a demo company with realistic invoicing data.

What it creates:
- Company (tenant) + admin user with credentials.
- Products/services catalog (~10 entries across a few categories).
- Clients (default 12) with sequential CLT codes.
- Staff (4) with a few months of payments, mirrored as ledger expenses.
- Transactions spread over the last months: a mix of paid, partially paid,
  pending and draft; past due ones are swept to overdue at the end.
- A couple of quick templates.

Run from the project root:
    python scripts/seed_demo_data.py \
        --company-name "Demo Studio" \
        --email admin@demostudio.com \
        --password DemoStudio#2026 \
        --clients 12 --transactions 80

Note: This is intended for development environments only.
"""

# Add project root to sys.path so `invoicehub.*` imports work even if CWD changes
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse
import random
from datetime import date, timedelta
from decimal import Decimal

from fastapi import HTTPException

from invoicehub.database.database import SessionLocal
from invoicehub.modules.auth.schemas import UserCreate
from invoicehub.modules.auth.service import AuthService
from invoicehub.modules.clients.schemas import ClientCreate
from invoicehub.modules.clients.service import ClientService
from invoicehub.modules.products.schemas import ProductCreate
from invoicehub.modules.products import service as product_service
from invoicehub.modules.quick_templates.schemas import QuickTransactionTemplateCreate, QuickStaffPaymentTemplateCreate
from invoicehub.modules.quick_templates.service import QuickTemplateService
from invoicehub.modules.staff.models import StaffRole
from invoicehub.modules.staff.schemas import StaffCreate, StaffPaymentCreate
from invoicehub.modules.staff.service import StaffService
from invoicehub.modules.transactions.models import TransactionStatus
from invoicehub.modules.transactions.schemas import TransactionCreate, TransactionItemCreate, PaymentCreate
from invoicehub.modules.transactions.service import TransactionService


CATALOG = [
    ("Website Maintenance", "Services", "250.00", "10.00"),
    ("Logo Design", "Design", "400.00", "10.00"),
    ("Brand Guidelines", "Design", "900.00", "10.00"),
    ("Hosting (yearly)", "Hosting", "120.00", "0.00"),
    ("Domain Renewal", "Hosting", "18.00", "0.00"),
    ("SEO Audit", "Marketing", "650.00", "10.00"),
    ("Social Media Pack", "Marketing", "300.00", "10.00"),
    ("Support Hour", "Services", "75.00", "10.00"),
    ("Copywriting (page)", "Content", "90.00", "10.00"),
    ("Photo Retouching", "Design", "35.00", "10.00"),
]

BUSINESS_WORDS = ["Northwind", "Blue Harbor", "Summit", "Maple", "Granite", "Riverside", "Cedar", "Lighthouse",
                  "Orchard", "Copperfield", "Silverline", "Redwood", "Evergreen", "Falcon", "Willow", "Aurora"]
BUSINESS_SUFFIXES = ["Traders", "Bakery", "Consulting", "Dental", "Fitness", "Studio", "Logistics", "Books"]
FIRST_NAMES = ["Nora", "Liam", "Ava", "Mateo", "Zoe", "Omar", "Ivy", "Hugo", "Mia", "Theo", "Lena", "Kai"]
LAST_NAMES = ["West", "Park", "Reyes", "Stone", "Novak", "Ali", "Brooks", "Klein", "Moreau", "Silva"]
CITIES = [("Portland", "OR"), ("Austin", "TX"), ("Denver", "CO"), ("Madison", "WI"), ("Raleigh", "NC")]
PAYMENT_METHODS = ["Bank Transfer", "Card", "Cash", "Check"]

STAFF = [
    ("Sam Support", "Support Engineer", StaffRole.SUPPORT, "1500.00"),
    ("Fiona Finance", "Bookkeeper", StaffRole.FINANCE, "1800.00"),
    ("Dev Patel", "Developer", StaffRole.SUPPORT, "2400.00"),
    ("Grace Hall", "Office Manager", StaffRole.ADMIN, "2100.00"),
]


def pick(seq):
    return random.choice(seq)


def slug(text: str) -> str:
    return "".join(ch for ch in text.lower() if ch.isalnum())


def register_company(db, company_name: str, email: str, password: str):
    try:
        return AuthService(db).register(UserCreate(
            first_name="Admin", last_name="Demo", email=email, password=password, company_name=company_name
        ))
    except HTTPException as e:
        if e.status_code == 409:
            print(f"A user with email {email} already exists; pick another --email.")
            sys.exit(1)
        raise


def create_products(db, tenant_id, user_id):
    products = []
    for name, category, price, tax in CATALOG:
        products.append(product_service.create_product(
            db, ProductCreate(name=name, category=category, price=Decimal(price), tax_rate=Decimal(tax)),
            tenant_id, user_id
        ))
    return products


def create_clients(db, tenant_id, user_id, count, email_domain):
    service = ClientService(db)
    names = random.sample([f"{w} {s}" for w in BUSINESS_WORDS for s in BUSINESS_SUFFIXES], count)
    clients = []
    for name in names:
        city, state = pick(CITIES)
        contact = f"{pick(FIRST_NAMES)} {pick(LAST_NAMES)}"
        clients.append(service.create_client(ClientCreate(
            business_name=name,
            contact_person=contact,
            email=f"{slug(name)}@{email_domain}",
            phone=f"+1 555 {random.randint(100, 999)} {random.randint(1000, 9999)}",
            street=f"{random.randint(10, 999)} Main St",
            city=city,
            state=state,
            zip=f"{random.randint(10000, 99999)}",
            payment_schedule=pick(["weekly", "monthly"]),
        ), tenant_id, user_id))
    return clients


def create_staff(db, tenant_id, user_id, email_domain, months):
    service = StaffService(db)
    today = date.today()
    members = []
    for name, position, role, rate in STAFF:
        member = service.create_staff(StaffCreate(
            name=name,
            email=f"{name.split()[0].lower()}@{email_domain}",
            position=position,
            role=role,
            payment_rate=Decimal(rate),
            join_date=today - timedelta(days=30 * (months + 2)),
        ), tenant_id)
        for offset in range(months, 0, -1):
            service.record_payment(member.id, StaffPaymentCreate(
                amount=Decimal(rate),
                date_paid=today - timedelta(days=30 * offset),
                payment_method="Bank Transfer",
            ), tenant_id, user_id)
        members.append(member)
    return members


def create_transactions(db, tenant_id, user_id, clients, products, count, months):
    service = TransactionService(db)
    today = date.today()
    created = 0
    for _ in range(count):
        transaction_date = today - timedelta(days=random.randint(0, 30 * months))
        items = [
            TransactionItemCreate(product_id=product.id, quantity=Decimal(random.randint(1, 4)))
            for product in random.sample(products, random.randint(1, 3))
        ]
        roll = random.random()
        status = TransactionStatus.DRAFT if roll < 0.05 else (
            TransactionStatus.PAID if roll < 0.55 else TransactionStatus.PENDING
        )
        transaction = service.create_transaction(TransactionCreate(
            client_id=pick(clients).id,
            transaction_date=transaction_date,
            payment_method=pick(PAYMENT_METHODS),
            status=status,
            items=items,
        ), tenant_id, user_id)

        # roughly a third of open transactions get a partial payment
        if status == TransactionStatus.PENDING and random.random() < 0.35:
            amount = (transaction.total_amount * Decimal(random.choice(["0.25", "0.5", "0.75"]))).quantize(Decimal("0.01"))
            if amount > 0:
                service.record_payment(transaction.id, PaymentCreate(
                    amount=amount,
                    payment_date=min(today, transaction_date + timedelta(days=random.randint(1, 20))),
                ), tenant_id, user_id)
        created += 1
    return created


def create_templates(db, tenant_id, user_id, clients, products, staff):
    service = QuickTemplateService(db)
    service.create_transaction_template(QuickTransactionTemplateCreate(
        name="Monthly maintenance",
        client_id=clients[0].id,
        product_id=products[0].id,
    ), tenant_id, user_id)
    service.create_staff_template(QuickStaffPaymentTemplateCreate(
        name="Monthly salary",
        staff_id=staff[0].id,
        amount=staff[0].payment_rate,
    ), tenant_id, user_id)


def main():
    parser = argparse.ArgumentParser(description="Seed invoicing demo data")
    parser.add_argument("--company-name", default="Demo Studio")
    parser.add_argument("--email", default="admin@demostudio.com")
    parser.add_argument("--password", default="DemoStudio#2026")
    parser.add_argument("--clients", type=int, default=12)
    parser.add_argument("--transactions", type=int, default=80)
    parser.add_argument("--months", type=int, default=6)
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible data")
    args = parser.parse_args()

    if args.seed is not None:
        random.seed(args.seed)
    email_domain = args.email.split("@", 1)[1]

    db = SessionLocal()
    try:
        auth = register_company(db, args.company_name, args.email, args.password)
        tenant_id, user_id = auth.user.tenant_id, auth.user.id

        print("Creating catalog...")
        products = create_products(db, tenant_id, user_id)
        print(f"Products created: {len(products)}")

        print("Creating clients...")
        clients = create_clients(db, tenant_id, user_id, args.clients, email_domain)
        print(f"Clients created: {len(clients)}")

        print("Creating staff and payroll history...")
        staff = create_staff(db, tenant_id, user_id, email_domain, args.months)
        print(f"Staff created: {len(staff)}")

        print("Creating transactions and payments...")
        created = create_transactions(db, tenant_id, user_id, clients, products, args.transactions, args.months)
        print(f"Transactions created: {created}")

        swept = TransactionService(db).mark_overdue(tenant_id)
        print(f"Marked overdue: {swept.updated}")

        create_templates(db, tenant_id, user_id, clients, products, staff)

        print("\nSeed completed.")
        print("Login credentials:")
        print(f"  Email:    {args.email}")
        print(f"  Password: {args.password}")
        print("Company:")
        print(f"  Name:     {args.company_name}")
        print(f"  Company ID (tenant_id): {tenant_id}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
