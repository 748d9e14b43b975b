"""
Batch document ingestion.

This script:
1. Finds every supported file in a directory
2. Uploads each one (duplicates by content are skipped)
3. Extracts, chunks and embeds them inline
4. Optionally backfills chunks left without embeddings

Usage:
    python ingest_documents.py path/to/docs [--backfill]
"""
import argparse
import sys
import logging
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from config import LOG_LEVEL, LOG_FORMAT
from logger import setup_logging
from models.document import DocumentStatus
from services.chunking_engine import ChunkingEngine
from services.document_loader import TextExtractor, DocumentProcessingError
from services.document_service import DocumentService
from services.embedding_indexer import EmbeddingIndexer
from services.embedding_model import EmbeddingModel
from services.vector_store import create_vector_store

logger = logging.getLogger(__name__)


def ingest_directory(document_service: DocumentService, directory: Path) -> dict:
    """
    Ingest every supported file in a directory.

    Returns:
        Counts of completed, failed and skipped files
    """
    extractor = document_service.text_extractor
    files = sorted(p for p in directory.iterdir() if p.is_file() and extractor.is_supported(p.name))
    logger.info(f"Found {len(files)} supported files in {directory}")

    summary = {"completed": 0, "failed": 0, "skipped": 0}
    for path in files:
        try:
            document = document_service.upload_document(path.name, path.read_bytes(), background=False)
        except DocumentProcessingError as e:
            logger.warning(f"Skipping {path.name}: {e}")
            summary["skipped"] += 1
            continue

        if document.status == DocumentStatus.COMPLETED:
            summary["completed"] += 1
            logger.info(f"  ✓ {path.name}: {document.metadata.get('chunk_count', 0)} chunks")
        else:
            summary["failed"] += 1
            logger.error(f"  ✗ {path.name}: {document.error_message}")
    return summary


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Ingest a directory of documents")
    parser.add_argument("directory", type=Path, help="Directory containing PDF, .txt or .md files")
    parser.add_argument("--backfill", action="store_true", help="Embed stored chunks that have no embedding")
    args = parser.parse_args(argv)

    setup_logging(LOG_LEVEL, LOG_FORMAT)

    if not args.directory.is_dir():
        logger.error(f"Directory not found: {args.directory}")
        return 1

    document_service = None
    try:
        vector_store = create_vector_store()
        embedding_model = EmbeddingModel()
        indexer = EmbeddingIndexer(embedding_model, vector_store)
        document_service = DocumentService(
            vector_store=vector_store,
            text_extractor=TextExtractor(),
            chunking_engine=ChunkingEngine(),
            indexer=indexer,
        )

        logger.info("Warming up embedding model (may take 15-20 seconds on the free tier)...")
        embedding_model.warmup()

        summary = ingest_directory(document_service, args.directory)
        if args.backfill:
            summary["backfilled"] = document_service.backfill_embeddings()

        logger.info(f"Ingestion complete: {summary}")
        return 0 if summary["failed"] == 0 else 2

    except KeyboardInterrupt:
        logger.warning("Ingestion interrupted by user")
        return 1
    except Exception as e:
        logger.error(f"Ingestion failed: {str(e)}", exc_info=True)
        return 1
    finally:
        if document_service is not None:
            document_service.shutdown()


if __name__ == "__main__":
    sys.exit(main())
