"""Command-line access to the docrag ingestion and query pipelines."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Sequence

from docrag.api.app import AppDependencies, build_dependencies
from docrag.config import get_settings
from docrag.errors import DocRAGError
from docrag.ingestion import ingest_file
from docrag.models import DocumentMetadata


def _metadata_dict(metadata: DocumentMetadata) -> dict[str, Any]:
    payload = asdict(metadata)
    payload["upload_date"] = metadata.upload_date.isoformat()
    return payload


def _cmd_ingest(deps: AppDependencies, args: argparse.Namespace) -> Any:
    return [asdict(ingest_file(deps.ingestion, path)) for path in args.paths]


def _cmd_ask(deps: AppDependencies, args: argparse.Namespace) -> Any:
    answer = deps.query_service.answer(args.question, top_k=args.top_k)
    return {
        "answer": answer.text,
        "sources": [
            {
                "document_id": source.chunk.document_id,
                "file_name": source.chunk.metadata.file_name,
                "chunk_index": source.chunk.chunk_index,
                "score": source.score,
            }
            for source in answer.sources
        ],
        "latency_ms": answer.latency_ms,
    }


def _cmd_list(deps: AppDependencies, args: argparse.Namespace) -> Any:  # noqa: ARG001
    return [_metadata_dict(metadata) for metadata in deps.catalog.list_documents()]


def _cmd_show(deps: AppDependencies, args: argparse.Namespace) -> Any:
    document = deps.catalog.get_document(args.document_id)
    return {**_metadata_dict(document.metadata), "full_text": document.full_text}


def _cmd_delete(deps: AppDependencies, args: argparse.Namespace) -> Any:
    return asdict(deps.catalog.delete_document(args.document_id))


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="docrag", description="Ingest documents and ask questions about them.")
    commands = parser.add_subparsers(dest="command", required=True)

    ingest = commands.add_parser("ingest", help="Upload and index one or more files")
    ingest.add_argument("paths", nargs="+", type=Path, help="Files to ingest (.pdf, .docx, .txt)")
    ingest.set_defaults(handler=_cmd_ingest)

    ask = commands.add_parser("ask", help="Answer a question from the indexed documents")
    ask.add_argument("question", help="Natural-language question")
    ask.add_argument("--top-k", type=int, default=None, help="Number of chunks to retrieve")
    ask.set_defaults(handler=_cmd_ask)

    listing = commands.add_parser("list", help="List indexed documents")
    listing.set_defaults(handler=_cmd_list)

    show = commands.add_parser("show", help="Print a document's reconstructed text")
    show.add_argument("document_id")
    show.set_defaults(handler=_cmd_show)

    delete = commands.add_parser("delete", help="Delete a document's file and chunks")
    delete.add_argument("document_id")
    delete.set_defaults(handler=_cmd_delete)
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None, *, dependencies: AppDependencies | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    deps = dependencies or build_dependencies(get_settings())
    try:
        result = args.handler(deps, args)
    except DocRAGError as exc:
        print(json.dumps({"error": exc.code, "detail": exc.message, "document_id": exc.document_id}), file=sys.stderr)
        return 1
    print(json.dumps(result, indent=2, default=str))
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    sys.exit(main())
