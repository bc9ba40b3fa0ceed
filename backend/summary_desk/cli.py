#!/usr/bin/env python3
"""Command-line client for the Summary Desk API.

Usage:
  python -m summary_desk.cli [--api-url URL] [--token TOKEN] list [--filter all|withSummary|withoutSummary] [--sort name|date] [--order asc|desc]
  python -m summary_desk.cli upload <pdf_path>
  python -m summary_desk.cli generate <name> [--interval SECONDS] [--timeout SECONDS] [--no-wait-trigger]
  python -m summary_desk.cli summary <name>
  python -m summary_desk.cli delete <name> [--yes]

`generate` fires the summary webhook from this process and polls the API's
catalog until the summary shows up, the same way the web client does.
Webhook settings come from SUMMARY_WEBHOOK_URL / WEBHOOK_AUTH_KEY.
"""
from __future__ import annotations
import argparse
import asyncio
import os
import sys
from pathlib import Path

from summary_desk.exceptions import NotFoundError, SummaryDeskError
from summary_desk.services.catalog import SortField, SortOrder, SummaryFilter
from summary_desk.services.summary_coordinator import GenerationState, SummaryGenerationCoordinator
from summary_desk.services.summary_trigger import SummarizationTrigger
from summary_desk.client import SummaryDeskClient


def _print_documents(catalog) -> None:
    if not len(catalog):
        print("No PDF documents found. Upload some files to get started.")
        return
    for doc in catalog.documents:
        flag = "summary" if doc.has_summary else "-"
        print(f"{doc.uploaded_at:%Y-%m-%d %H:%M}  {flag:8} {doc.name}")


async def cmd_list(client: SummaryDeskClient, args) -> int:
    catalog = await client.list_documents(SummaryFilter(args.filter), SortField(args.sort), SortOrder(args.order))
    _print_documents(catalog)
    return 0


async def cmd_upload(client: SummaryDeskClient, args) -> int:
    path = Path(args.path)
    if not path.is_file():
        print(f"File not found: {path}", file=sys.stderr)
        return 1
    key = await client.upload_pdf(path)
    print(f"Uploaded {key}")
    return 0


async def cmd_generate(client: SummaryDeskClient, args) -> int:
    catalog = await client.load_catalog()
    document = catalog.find(args.name)
    if document is None:
        raise NotFoundError(f"Document not found: {args.name}", operation="generate_summary", key=args.name)

    coordinator = SummaryGenerationCoordinator(
        SummarizationTrigger.from_settings(),
        client.load_catalog,
        poll_interval=args.interval,
        poll_timeout=args.timeout,
        await_trigger=not args.no_wait_trigger,
        owner="cli",
    )
    try:
        print(f"Started summary generation for {document.name}, polling every {coordinator.poll_interval:g}s...")
        result = await coordinator.generate_summary(document)
    finally:
        await coordinator.close()

    print(result.message or result.state.value)
    if result.state == GenerationState.READY:
        return 0
    if result.state == GenerationState.TIMED_OUT:
        return 2
    return 1


async def cmd_summary(client: SummaryDeskClient, args) -> int:
    print(await client.get_summary(args.name))
    return 0


async def cmd_delete(client: SummaryDeskClient, args) -> int:
    catalog = await client.load_catalog()
    document = catalog.find(args.name)
    if document is None:
        print("This file no longer exists.", file=sys.stderr)
        return 1
    if not args.yes:
        answer = input(f"Are you sure you want to delete {document.name}? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            return 1
    body = await client.delete_document(document)
    for anomaly in body.get("anomalies", []):
        print(f"warning: {anomaly}", file=sys.stderr)
    print(f"Deleted {document.name}")
    _print_documents(await client.load_catalog())
    return 0


COMMANDS = {
    "list": cmd_list,
    "upload": cmd_upload,
    "generate": cmd_generate,
    "summary": cmd_summary,
    "delete": cmd_delete,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="summary-desk", description="Summary Desk command-line client")
    parser.add_argument("--api-url", default=os.getenv("SUMMARY_DESK_API_URL", "http://localhost:8000"))
    parser.add_argument("--token", default=os.getenv("SUMMARY_DESK_TOKEN"), help="Clerk session token")
    sub = parser.add_subparsers(dest="command", required=True)

    p_list = sub.add_parser("list", help="List uploaded PDFs")
    p_list.add_argument("--filter", choices=[f.value for f in SummaryFilter], default=SummaryFilter.ALL.value)
    p_list.add_argument("--sort", choices=[f.value for f in SortField], default=SortField.UPLOADED_AT.value)
    p_list.add_argument("--order", choices=[o.value for o in SortOrder], default=SortOrder.DESC.value)

    p_upload = sub.add_parser("upload", help="Upload a PDF")
    p_upload.add_argument("path")

    p_generate = sub.add_parser("generate", help="Generate a summary and wait for it")
    p_generate.add_argument("name")
    p_generate.add_argument("--interval", type=float, default=None, help="Seconds between polls")
    p_generate.add_argument("--timeout", type=float, default=None, help="Polling budget in seconds")
    p_generate.add_argument("--no-wait-trigger", action="store_true", help="Fire the webhook without awaiting it")

    p_summary = sub.add_parser("summary", help="Print a summary")
    p_summary.add_argument("name")

    p_delete = sub.add_parser("delete", help="Delete a PDF and its summary")
    p_delete.add_argument("name")
    p_delete.add_argument("--yes", action="store_true", help="Skip confirmation")
    return parser


async def run(args) -> int:
    async with SummaryDeskClient(args.api_url, args.token) as client:
        try:
            return await COMMANDS[args.command](client, args)
        except SummaryDeskError as e:
            hint = {"refresh": "refresh the list and try again", "retry": "try again",
                    "fix_input": "check the file name", "wait": "wait for the current run to finish",
                    "contact_support": "check the server configuration"}.get(e.action, e.action)
            print(f"Error: {e} ({hint})", file=sys.stderr)
            return 1


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
