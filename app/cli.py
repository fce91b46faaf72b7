"""journal-manager — command line tool for managing the journal database.

Usage:
    journal-manager search "cardiology" [--medline] [--pmc] [--all]
    journal-manager update ["query"]
    journal-manager import journals.json
    journal-manager map-specialty Cardiology "cardiology[st]"
    journal-manager list-specialties
    journal-manager find "lancet"
    journal-manager specialty-journals Cardiology
"""

import argparse
import asyncio
import sys
from pathlib import Path

from loguru import logger

from .exceptions import JournalLookupError
from .http_client import close_clients
from .logging_config import setup_logging
from .schemas.journals import CatalogFilters
from .services.journal_database import JournalDatabase
from .services.journal_service import JournalService


def _print_journals(journals) -> None:
    for j in journals:
        print(f"- {j.title} ({j.nlm_id})")
        if j.medline_abbr:
            print(f"  Medline Abbr: {j.medline_abbr}")
        if j.issns:
            print(f"  ISSNs: {', '.join(j.issns)}")


async def cmd_search(service: JournalService, args) -> None:
    print(f'Searching for journals matching "{args.query}"...')
    filters = CatalogFilters(
        currently_indexed=not args.all, medline=args.medline, pubmed_central=args.pmc
    )
    journals = await service.search_external_catalog(args.query, filters)
    print(f'Found {len(journals)} journals matching "{args.query}"')
    _print_journals(journals)


async def cmd_update(service: JournalService, args) -> None:
    suffix = f" with query: {args.query}" if args.query else ""
    print(f"Updating journal database{suffix}...")
    count = await service.refresh_database(args.query or "")
    print(f"Updated {count} journals in the database")


async def cmd_import(service: JournalService, args) -> None:
    path = Path(args.file).resolve()
    if not path.is_file():
        raise JournalLookupError(f"File {path} does not exist or cannot be accessed")
    print(f"Importing journals from {path}...")
    count = await service.database.import_from_file(path)
    print(f"Imported {count} journals from {path}")


async def cmd_map_specialty(service: JournalService, args) -> None:
    print(f'Mapping journals matching "{args.query}" to specialty "{args.specialty}"...')
    count = await service.remap_specialties(args.specialty, args.query)
    print(f'Mapped {count} journals to specialty "{args.specialty}"')


async def cmd_list_specialties(service: JournalService, args) -> None:
    specialties = await service.list_specialties()
    if not specialties:
        print("No specialties available. Use map-specialty to create specialty mappings.")
        return
    print(f"Available specialties ({len(specialties)}):")
    for s in specialties:
        print(f"- {s['name']} ({s['journal_count']} journals)")


async def cmd_find(service: JournalService, args) -> None:
    journals = service.database.find_by_name(args.name)
    if not journals:
        print(f'No journals found matching "{args.name}"')
        return
    print(f'Found {len(journals)} journals matching "{args.name}":')
    _print_journals(journals)


async def cmd_specialty_journals(service: JournalService, args) -> None:
    journals = await service.by_specialty(args.specialty)
    if not journals:
        print(f'No journals found for specialty "{args.specialty}"')
        return
    print(f'Found {len(journals)} journals for specialty "{args.specialty}":')
    _print_journals(journals)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="journal-manager", description="CLI tool for managing the journal database"
    )
    parser.add_argument("--data-dir", help="Directory holding the journal database files")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("search", help="Search for journals in the NLM Catalog")
    p.add_argument("query")
    p.add_argument("-m", "--medline", action="store_true", help="Only journals indexed in MEDLINE")
    p.add_argument("-p", "--pmc", action="store_true", help="Only journals in PubMed Central")
    p.add_argument("-a", "--all", action="store_true", help="Include journals no longer indexed")
    p.set_defaults(func=cmd_search)

    p = sub.add_parser("update", help="Update the journal database from the NLM Catalog")
    p.add_argument("query", nargs="?", default="")
    p.set_defaults(func=cmd_update)

    p = sub.add_parser("import", help="Import journals from a JSON file of titles")
    p.add_argument("file")
    p.set_defaults(func=cmd_import)

    p = sub.add_parser("map-specialty", help="Map catalog search results to a specialty")
    p.add_argument("specialty")
    p.add_argument("query")
    p.set_defaults(func=cmd_map_specialty)

    p = sub.add_parser("list-specialties", help="List all available specialties")
    p.set_defaults(func=cmd_list_specialties)

    p = sub.add_parser("find", help="Find journals by name in the database")
    p.add_argument("name")
    p.set_defaults(func=cmd_find)

    p = sub.add_parser("specialty-journals", help="List journals for a specialty")
    p.add_argument("specialty")
    p.set_defaults(func=cmd_specialty_journals)
    return parser


async def run(args, service: JournalService | None = None) -> int:
    owns_client = service is None
    if service is None:
        service = JournalService(JournalDatabase(data_dir=args.data_dir))
    try:
        await service.initialize()
        await args.func(service, args)
    except JournalLookupError as e:
        logger.error(f"{args.command} failed: {e.message}")
        return 1
    finally:
        if owns_client:
            await close_clients()
    return 0


def main(argv=None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging()
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
