#!/usr/bin/env python
"""
Write a reproducible demo store export.

Usage:
    python scripts/generate_sample_store.py
    python scripts/generate_sample_store.py --reports 120 --seed 7 --output data/reports.json
"""
import argparse
import json
import sys
from datetime import date, datetime, time, timedelta
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np

from obra_dashboard.config import config, ACTIVITIES_COLLECTION, LABOR_COLLECTION, REPORTS_COLLECTION


CONTRACTORS = ["Bloque A", "Bloque B", "Bloque C", "Estructuras del Sur", ""]
AUTHORS = ["Ing. Rojas", "Ing. Quispe", "Ing. Salazar"]
REVIEWERS = ["Arq. Mendoza", "Ing. Castillo"]

ACTIVITIES = [
    ("Encofrado de columnas", "m2", 80.0),
    ("Vaciado de concreto", "m3", 25.0),
    ("Habilitado de acero", "kg", 900.0),
    ("Tarrajeo de muros", "m2", 120.0),
    ("Asentado de ladrillo", "m2", 60.0),
    ("Excavación de zanjas", "m3", 40.0),
]

WORKERS = [
    ("40123456", "Juan Pérez", "OPERARIO"),
    ("40234567", "Luis Huamán", "OPERARIO"),
    ("40345678", "Carlos Torres", "OFICIAL"),
    ("40456789", "Miguel Flores", "OFICIAL"),
    ("40567890", "José Ramos", "PEON"),
    ("40678901", "Pedro Vargas", "PEON"),
    ("40789012", "Raúl Chávez", "PEON"),
    ("40890123", "Andrés Soto", "CAPATAZ"),
]

CAUSES = ["", "", "", "Lluvia", "Falta de material", "Equipo en mantenimiento"]


def build_report(rng: np.random.Generator, index: int, day: date) -> dict:
    """One report with its activity and worker-hours children."""
    n_acts = int(rng.integers(2, 5))
    acts = rng.choice(len(ACTIVITIES), size=n_acts, replace=False)

    actividades = []
    for i, a in enumerate(acts):
        name, unit, planned = ACTIVITIES[a]
        planned = round(float(planned * rng.uniform(0.6, 1.4)), 2)
        executed = round(float(planned * rng.uniform(0.3, 1.1)), 2)
        actividades.append({
            "id": f"r{index:04d}-a{i}",
            "data": {
                "proceso": name,
                "und": unit,
                "metradoP": planned,
                "metradoE": executed,
                "precio": round(float(rng.uniform(15, 90)), 2),
                "causas": str(rng.choice(CAUSES)),
            },
        })

    n_workers = int(rng.integers(3, 7))
    chosen = rng.choice(len(WORKERS), size=n_workers, replace=False)

    mano_obra = []
    for i, w in enumerate(chosen):
        dni, name, category = WORKERS[w]
        hours = rng.multinomial(int(rng.integers(6, 10)), [1 / n_acts] * n_acts)
        mano_obra.append({
            "id": f"r{index:04d}-w{i}",
            "data": {
                "dni": dni,
                "trabajador": name,
                "categoria": category,
                "horas": [str(int(h)) for h in hours],
            },
        })

    submitted = datetime.combine(day, time(18, 0))
    return {
        "id": f"r{index:04d}",
        "data": {
            "fecha": day.isoformat(),
            "elaboradoPor": str(rng.choice(AUTHORS)),
            "subcontratistaBloque": str(rng.choice(CONTRACTORS)),
            "revisadoPor": str(rng.choice(REVIEWERS)),
            "timestamp": submitted.isoformat(),
            "usuarioEmail": "campo@obra.pe",
            "usuarioUID": "demo",
        },
        ACTIVITIES_COLLECTION: actividades,
        LABOR_COLLECTION: mano_obra,
    }


def build_export(n_reports: int, seed: int, today: date, span_days: int = 180) -> dict:
    rng = np.random.default_rng(seed)
    offsets = np.sort(rng.integers(0, span_days, size=n_reports))[::-1]
    reports = [build_report(rng, i, today - timedelta(days=int(off))) for i, off in enumerate(offsets)]
    return {REPORTS_COLLECTION: reports}


def main():
    parser = argparse.ArgumentParser(description="Generate a demo report store export")
    parser.add_argument("--reports", type=int, default=90, help="Number of reports")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output path (defaults to the configured store path)"
    )

    args = parser.parse_args()
    output = Path(args.output) if args.output else config.store_path

    payload = build_export(args.reports, args.seed, date.today())
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")

    print(f"✓ Wrote {args.reports} reports to {output}")


if __name__ == "__main__":
    main()
