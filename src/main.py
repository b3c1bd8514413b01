# Command line entry point for bracket and King progression planning

import argparse
import sys

import yaml

from progression.config import load_settings
from progression.elimination import build_bracket, calculate_bracket_structure, get_bracket_display
from progression.errors import TournamentError
from progression.models import Entrant, MatchFormat
from progression.planner import plan_progression, validate_phase_chain


def load_entrants(file_path):
    """Entrants from YAML: a list of names or of {id, name, seed} mappings, best first."""
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file) or []
    if isinstance(data, dict):
        data = data.get('entrants', [])
    return [Entrant.from_dict(item) for item in data]


def load_phases(file_path):
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file) or {}
    if isinstance(data, dict):
        return data.get('phases', []), data.get('total_players')
    return data, None


def print_bracket(entrants, settings):
    structure = calculate_bracket_structure(len(entrants))
    matches = build_bracket(entrants, MatchFormat.from_dict(settings['bracket_format']))
    display = get_bracket_display(matches)

    print(f"{len(entrants)} entrants: {structure['total_slots']} slots, {structure['byes']} byes, "
          f"{structure['preliminary_matches']} preliminary matches")
    for round_name, round_matches in display['rounds'].items():
        print(f"\n# {round_name}")
        for match in round_matches:
            print(f"  M{match['id']}: {match['label_a']} vs {match['label_b']}")


def print_plans(players, fields, settings):
    configurations = plan_progression(players, fields, settings)
    if not configurations:
        print(f"No configuration fits {players} players on {fields} field(s).")
        return
    for configuration in configurations:
        print(f"\n# {configuration['name']}: {configuration['description']}")
        for phase in configuration['phases']:
            ppt = phase['players_per_team']
            print(f"  Phase {phase['phase_number']} ({ppt}v{ppt}, {phase['phase_format']}): "
                  f"{phase['total_teams']} teams in pools {phase['pool_distribution']}, "
                  f"{phase['total_matches']} matches, {phase['total_qualified']} qualify "
                  f"{phase['qualified_distribution']}, ~{phase['estimated_minutes']} min")
        print(f"  Total: ~{configuration['estimated_minutes']} min")
        for warning in configuration['warnings']:
            print(f"  WARNING: {warning}")
        for error in configuration['errors']:
            print(f"  ERROR: {error}")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Build elimination brackets and plan King progressions'
    )
    parser.add_argument(
        '--settings',
        help='Settings YAML file (defaults are used when omitted)'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    bracket_parser = subparsers.add_parser('bracket', help='Show the bracket for a seeded entrant list')
    bracket_parser.add_argument('entrants', help='YAML file listing entrants best first')

    plan_parser = subparsers.add_parser('plan', help='Suggest King configurations')
    plan_parser.add_argument('--players', type=int, required=True, help='Registered players')
    plan_parser.add_argument('--fields', type=int, required=True, help='Available fields')

    validate_parser = subparsers.add_parser('validate', help='Check a chain of phases')
    validate_parser.add_argument('phases', help='YAML file with a list of phases')

    args = parser.parse_args(argv)
    settings = load_settings(args.settings)

    try:
        if args.command == 'bracket':
            print_bracket(load_entrants(args.entrants), settings)
        elif args.command == 'plan':
            print_plans(args.players, args.fields, settings)
        elif args.command == 'validate':
            phases, total_players = load_phases(args.phases)
            result = validate_phase_chain(phases, total_players)
            if result['valid']:
                print("Phase chain is valid.")
            else:
                for error in result['errors']:
                    print(f"ERROR: {error}")
                return 1
    except TournamentError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == '__main__':
    sys.exit(main())
