#!/usr/bin/env python3
"""
Write a sample medicine snapshot for offline runs (MEDICINES_FILE=...).
Output mirrors the backend's GET /medicines payload.
"""

import argparse
import json
import random
from datetime import datetime, timedelta, timezone

from faker import Faker

# --------------------------------------------------------------------
# CONFIG
# --------------------------------------------------------------------
NUM_MEDICINES = 60

CATEGORIES = ["Antibiotics", "Analgesics", "Antihypertensives", "Antidiabetics", "Vitamins", "Antimalarials"]
DOSAGE_FORMS = ["Tablet", "Capsule", "Syrup", "Injection", "Ointment", "Suspension"]
MEDICINE_NAMES = [
    "Amoxicillin", "Paracetamol", "Ibuprofen", "Metformin", "Amlodipine", "Ciprofloxacin",
    "Artemether", "Omeprazole", "Vitamin C", "Azithromycin", "Losartan", "Diclofenac",
    "Cotrimoxazole", "Ferrous Sulfate", "Glibenclamide", "Metronidazole",
]

# share of records per expiry bucket: expired, within 90 days, within 180 days, later
EXPIRY_BUCKETS = [(0.15, (-200, -1)), (0.20, (0, 90)), (0.15, (91, 180)), (0.50, (181, 900))]

# --------------------------------------------------------------------
# SETUP
# --------------------------------------------------------------------
fake = Faker()
EAT = timezone(timedelta(hours=3))


# --------------------------------------------------------------------
# HELPERS
# --------------------------------------------------------------------
def random_bool(p_true=0.5):
    return random.random() < p_true


def random_expiry(now):
    r = random.random()
    acc = 0.0
    for share, (lo, hi) in EXPIRY_BUCKETS:
        acc += share
        if r <= acc:
            return now + timedelta(days=random.randint(lo, hi))
    return now + timedelta(days=365)


def build_medicine(med_id, now, suppliers):
    quantity = random.randint(0, 9) if random_bool(0.25) else random.randint(10, 500)
    unit_price = round(random.uniform(5, 250), 2)
    supplier_id, supplier_name = random.choice(suppliers)
    category = random.choice(CATEGORIES)
    dosage_form = random.choice(DOSAGE_FORMS)
    return {
        "id": med_id,
        "medicine_name": f"{random.choice(MEDICINE_NAMES)} {random.choice([100, 250, 500])}mg",
        "batch_number": fake.bothify("BN-####-??").upper(),
        "quantity": quantity,
        "unit_price": unit_price,
        "total_price": round(unit_price * quantity, 2),
        "expire_date": random_expiry(now).astimezone(timezone.utc).isoformat().replace("+00:00", "Z"),
        "category": {"id": CATEGORIES.index(category) + 1, "name": category},
        "dosage_form": {"id": DOSAGE_FORMS.index(dosage_form) + 1, "name": dosage_form},
        "supplier": {"id": supplier_id, "supplier_name": supplier_name},
    }


# --------------------------------------------------------------------
# MAIN
# --------------------------------------------------------------------
def main():
    parser = argparse.ArgumentParser(description="Generate a sample medicines snapshot")
    parser.add_argument("-o", "--output", default="medicines.json")
    parser.add_argument("-n", "--count", type=int, default=NUM_MEDICINES)
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args()

    random.seed(args.seed)
    Faker.seed(args.seed)

    now = datetime.now(EAT)
    suppliers = [(i, fake.company()) for i in range(1, 6)]

    print(f"Generating {args.count} medicines...")
    medicines = [build_medicine(i, now, suppliers) for i in range(1, args.count + 1)]

    with open(args.output, "w", encoding="utf-8") as f:
        json.dump(medicines, f, indent=2)

    print(f"Done! Wrote {args.output}")


if __name__ == "__main__":
    main()
