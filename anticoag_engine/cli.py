"""
Command-line interface for the anticoagulation engine.

Usage:
    anticoag-engine dose --guideline FCSA --inr 1.4 --target 2.0 3.0 --dose 35
    anticoag-engine schedule --dose 32.5 --loading 2.5
    anticoag-engine ttr controls.csv --target 2.0 3.0 --trend 3
    anticoag-engine nomogram --inr 2.1 --age 68 --has-bled 1
    anticoag-engine bridge --surgery-date 2026-03-10 --surgery-type major_orthopedic --mechanical-valve
"""

import argparse
import json
import logging
import sys
from datetime import date
from typing import List, Optional

import pandas as pd
from pydantic import ValidationError

from .config import load_config
from .engine import AnticoagulationEngine
from .errors import EngineError, ErrorCode, InvalidInputError, get_error_description, invalid_input
from .nomogram import PengoNomogram
from .schema import (
    BleedingContext, BleedingSite, BleedingType, GuidelineKind, INRObservation,
    RiskInputs, SurgeryType, ThromboembolicRisk, TherapyPhase
)

logger = logging.getLogger(__name__)

def _parse_date(value: str) -> date:
    return date.fromisoformat(value)

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Anticoagulation dosing and TTR engine')
    parser.add_argument('--config', help='Engine config YAML (default: config/engine.yaml)')
    parser.add_argument('--log-level', default='WARNING', help='Logging level')
    subparsers = parser.add_subparsers(dest='command', required=True)

    dose = subparsers.add_parser('dose', help='Evaluate one INR control')
    dose.add_argument('--guideline', choices=[g.value for g in GuidelineKind], default='FCSA')
    dose.add_argument('--inr', type=float, required=True)
    dose.add_argument('--target', type=float, nargs=2, metavar=('MIN', 'MAX'), default=[2.0, 3.0])
    dose.add_argument('--dose', type=float, required=True, help='Current weekly dose (mg)')
    dose.add_argument('--phase', choices=[p.value for p in TherapyPhase], default='maintenance')
    dose.add_argument('--non-compliant', action='store_true')
    dose.add_argument('--slow-metabolizer', action='store_true')
    dose.add_argument('--bleeding', choices=[b.value for b in BleedingType], default='none')
    dose.add_argument('--bleeding-site', choices=[s.value for s in BleedingSite], default='none')
    dose.add_argument('--mechanical-valve', action='store_true')
    dose.add_argument('--days-since-te', type=int, help='Days since last thromboembolism')
    dose.add_argument('--cha2ds2-vasc', type=int)
    dose.add_argument('--risk', choices=[r.value for r in ThromboembolicRisk])
    dose.add_argument('--ttr', type=float, help='Recent TTR percentage')
    dose.add_argument('--today', type=_parse_date, help='Date for the loading dose (YYYY-MM-DD)')

    schedule = subparsers.add_parser('schedule', help='Build a weekly schedule')
    schedule.add_argument('--dose', type=float, required=True, help='Weekly dose (mg)')
    schedule.add_argument('--loading', type=float, default=0.0, help='One-off loading supplement (mg)')
    schedule.add_argument('--today', type=_parse_date)

    ttr = subparsers.add_parser('ttr', help='TTR from a CSV of date,inr controls')
    ttr.add_argument('csv', help='CSV file with date and inr columns')
    ttr.add_argument('--target', type=float, nargs=2, metavar=('MIN', 'MAX'), default=[2.0, 3.0])
    ttr.add_argument('--start', type=_parse_date)
    ttr.add_argument('--end', type=_parse_date)
    ttr.add_argument('--trend', type=int, metavar='MONTHS', help='Also compute the rolling trend')

    nomogram = subparsers.add_parser('nomogram', help='Pengo induction nomogram')
    nomogram.add_argument('--inr', type=float, required=True, help='Day-5 INR')
    nomogram.add_argument('--age', type=int, required=True)
    nomogram.add_argument('--has-bled', type=int, default=0)

    bridge = subparsers.add_parser('bridge', help='Perioperative EBPM bridge plan')
    bridge.add_argument('--guideline', choices=[g.value for g in GuidelineKind], default='FCSA')
    bridge.add_argument('--surgery-date', type=_parse_date, required=True)
    bridge.add_argument('--surgery-type', choices=[s.value for s in SurgeryType], default='other')
    bridge.add_argument('--mechanical-valve', action='store_true')
    bridge.add_argument('--days-since-te', type=int, help='Days since last thromboembolism')
    bridge.add_argument('--cha2ds2-vasc', type=int)
    bridge.add_argument('--risk', choices=[r.value for r in ThromboembolicRisk])

    return parser

def read_observations(path: str) -> List[INRObservation]:
    frame = pd.read_csv(path)
    frame.columns = [c.strip().lower() for c in frame.columns]
    if not {'date', 'inr'} <= set(frame.columns):
        raise invalid_input(
            ErrorCode.INP_OBSERVATION_INVALID,
            "CSV must have 'date' and 'inr' columns",
            path=path, columns=list(frame.columns)
        )
    try:
        dates = pd.to_datetime(frame['date']).dt.date
        values = frame['inr'].astype(float)
    except (ValueError, TypeError) as e:
        raise invalid_input(ErrorCode.INP_OBSERVATION_INVALID, f"Unreadable control in {path}: {e}", path=path)
    try:
        return [INRObservation(control_date=d, inr=v) for d, v in zip(dates, values)]
    except ValidationError as e:
        raise invalid_input(
            ErrorCode.INP_OBSERVATION_INVALID,
            f"Invalid INR control in {path}: {e.errors()[0]['msg']}",
            path=path
        )

def _risk_inputs(args: argparse.Namespace) -> RiskInputs:
    return RiskInputs(
        has_mechanical_valve=args.mechanical_valve,
        days_since_last_thromboembolism=args.days_since_te,
        cha2ds2_vasc=args.cha2ds2_vasc,
        declared_risk=ThromboembolicRisk(args.risk) if args.risk else None
    )

def run(args: argparse.Namespace) -> dict:
    engine = AnticoagulationEngine(load_config(args.config))

    if args.command == 'dose':
        recommendation = engine.evaluate(
            GuidelineKind(args.guideline),
            args.inr,
            args.target[0],
            args.target[1],
            args.dose,
            phase=TherapyPhase(args.phase),
            is_compliant=not args.non_compliant,
            is_slow_metabolizer=args.slow_metabolizer,
            bleeding=BleedingContext(type=BleedingType(args.bleeding), site=BleedingSite(args.bleeding_site)),
            risk_inputs=_risk_inputs(args),
            ttr_percentage=args.ttr,
            today=args.today
        )
        return recommendation.model_dump(mode='json')

    if args.command == 'schedule':
        schedule = engine.synthesize_weekly_schedule(args.dose, args.loading, args.today)
        output = schedule.model_dump(mode='json')
        output['days'] = [d.model_dump(mode='json') for d in schedule.days()]
        output['full_description'] = schedule.full_description()
        return output

    if args.command == 'ttr':
        observations = read_observations(args.csv)
        result = engine.calculate_ttr(observations, args.target[0], args.target[1], args.start, args.end)
        output = result.model_dump(mode='json')
        output['quality_description'] = result.quality_description
        if result.error_code:
            output['error_description'] = get_error_description(ErrorCode(result.error_code))
        if args.trend is not None:
            trend = engine.calculate_ttr_trend(observations, args.target[0], args.target[1], args.trend)
            output['trend'] = {d.isoformat(): value for d, value in trend.items()}
        return output

    if args.command == 'bridge':
        protocol = engine.plan_bridge(
            GuidelineKind(args.guideline),
            args.surgery_date,
            SurgeryType(args.surgery_type),
            risk_inputs=_risk_inputs(args)
        )
        return protocol.model_dump(mode='json')

    estimate = PengoNomogram().estimate(args.inr, args.age, args.has_bled)
    return estimate.model_dump(mode='json')

def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        output = run(args)
    except InvalidInputError as e:
        print(e.to_json())
        return 2
    except EngineError as e:
        logger.error(f"Engine error: {e}")
        print(e.to_json())
        return 1

    print(json.dumps(output, indent=2))
    return 0

if __name__ == "__main__":
    sys.exit(main())
