from __future__ import annotations
import os
from typing import Optional

from oro.oro_datatypes import oro_native, require
from oro.oro_errors import OroRuntimeError


def resolve_path(locator: str, base_dir: Optional[str]) -> str:
    """Turn a script-supplied path into a filesystem path.

    Accepts plain paths and `file://` locators; relative paths are taken
    from `base_dir` (the script's directory) or the working directory.
    """
    rest = locator[7:] if locator.startswith("file://") else locator
    # Absolute filesystem root
    if rest.startswith("/"):
        return "/" + rest.lstrip("/")
    # Home directory
    if rest.startswith("~"):
        return os.path.expanduser(rest)
    base = base_dir or os.getcwd()
    if rest == "":
        return base
    return os.path.normpath(os.path.join(base, rest))


class TxtDocument:
    """A handle on a plain-text document; the file is read on demand."""

    def __init__(self, path: str):
        self.path = path

    def read_text(self) -> str:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            raise OroRuntimeError(f"File not found: {self.path}") from None
        except OSError as e:
            raise OroRuntimeError(f"Cannot read {self.path}: {e.strerror}") from None

    def __repr__(self):
        return f"<TxtDocument {self.path}>"


class DocumentLib:
    """Text-document natives. Relative paths resolve against the evaluator's source_dir."""

    def __init__(self, evaluator):
        self.evaluator = evaluator

    def _resolve(self, locator: str) -> str:
        return resolve_path(locator, self.evaluator.source_dir)

    @oro_native("workingDir")
    def working_dir(self):
        return os.getcwd()

    @oro_native("TxtDocument")
    def txt_document(self, path):
        require(path, "string", "TxtDocument")
        if not path.lower().endswith(".txt"):
            raise OroRuntimeError("Unsupported file type")
        return TxtDocument(self._resolve(path))

    @oro_native("getTxtText")
    def get_txt_text(self, doc):
        if not isinstance(doc, TxtDocument):
            raise OroRuntimeError("getTxtText() expects a TxtDocument as argument 1.")
        return doc.read_text()

    @oro_native("createTxtDoc")
    def create_txt_doc(self, path, text):
        require(path, "string", "createTxtDoc", 1)
        require(text, "string", "createTxtDoc", 2)
        target = self._resolve(path)
        try:
            os.makedirs(os.path.dirname(target) or ".", exist_ok=True)
            with open(target, "w", encoding="utf-8") as f:
                f.write(text)
        except OSError as e:
            raise OroRuntimeError(f"Cannot write {target}: {e.strerror}") from None
        return None
