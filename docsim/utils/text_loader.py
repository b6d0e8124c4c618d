import os
import unicodedata
from pathlib import Path
from typing import Iterable, List, Union

from ..core.logging_config import get_logger
from ..core.models import DocumentInput
from ..core.validation import FileValidationError

logger = get_logger(__name__)

TEXT_EXTENSIONS = {'.txt', '.text', '.md'}


def normalize_filename(filename: str) -> str:
    """NFC-normalize a filename so it displays and sorts consistently."""
    return unicodedata.normalize('NFC', filename)


def find_text_files(directory_path: Union[str, Path]) -> List[Path]:
    """
    Recursively collect plain-text files under a directory, sorted by path.

    Raises:
        FileValidationError: If the directory does not exist
    """
    directory = Path(directory_path)
    if not directory.is_dir():
        raise FileValidationError(f"Directory does not exist: {directory_path}",
                                  field="directory_path", value=str(directory_path))

    text_files = []
    for root, _, files in os.walk(directory):
        for file in files:
            if Path(file).suffix.lower() in TEXT_EXTENSIONS:
                text_files.append(Path(root) / file)

    text_files.sort()
    logger.info(f"Found {len(text_files)} text files in {directory}")
    return text_files


def load_text_documents(paths: Iterable[Union[str, Path]], encoding: str = 'utf-8') -> List[DocumentInput]:
    """
    Read plain-text files into DocumentInput objects, in argument order.

    Directories are expanded to the text files they contain. Undecodable
    bytes are replaced rather than failing the whole load.

    Raises:
        FileValidationError: If a path does not exist or has an unsupported extension
    """
    documents = []
    for raw_path in paths:
        path = Path(raw_path)
        if path.is_dir():
            files = find_text_files(path)
        elif path.is_file():
            if path.suffix.lower() not in TEXT_EXTENSIONS:
                raise FileValidationError(
                    f"Only plain-text files are supported ({', '.join(sorted(TEXT_EXTENSIONS))}), got {path.name}",
                    field="file_path",
                    value=str(path)
                )
            files = [path]
        else:
            raise FileValidationError(f"File does not exist: {raw_path}", field="file_path", value=str(raw_path))

        for file_path in files:
            text = file_path.read_text(encoding=encoding, errors='replace')
            documents.append(DocumentInput(name=normalize_filename(file_path.name), text=text))
            logger.debug(f"Loaded {file_path} ({len(text)} characters)")

    return documents
