"""Checks on rendered values files and manifests.

Every rendered file must be YAML (several documents allowed; documents
left empty by a conditional section are skipped).  Documents carrying a
``kind`` are manifests and get the checks Kubernetes would otherwise
apply at ``kubectl apply`` time; the others are values files and are
scanned for engine placeholders nobody filled in.
"""

from __future__ import annotations

import base64
import binascii
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set, Tuple

import yaml

from helm_overlays.charts.values import find_engine_placeholders
from helm_overlays.state.models import CheckResult, CheckStatus, ValidationReport

logger = logging.getLogger(__name__)

DEFAULT_CLASS_ANNOTATION = "storageclass.kubernetes.io/is-default-class"

#: NodePool operators that take no ``values``.
_VALUELESS_OPERATORS = {"Exists", "DoesNotExist"}


# ── documents ────────────────────────────────────────────────────────


class Document:
    """One non-empty YAML document of a rendered file."""

    def __init__(self, source: str, index: int, body: Any) -> None:
        self.source = source
        self.index = index
        self.body = body

    @property
    def kind(self) -> Optional[str]:
        if isinstance(self.body, dict):
            return self.body.get("kind")
        return None

    @property
    def is_manifest(self) -> bool:
        return self.kind is not None

    @property
    def name(self) -> str:
        meta = self.body.get("metadata") if isinstance(self.body, dict) else None
        if isinstance(meta, dict):
            return str(meta.get("name") or "")
        return ""

    def details(self, **extra: Any) -> Dict[str, Any]:
        info: Dict[str, Any] = {"file": self.source, "document": self.index}
        if self.kind:
            info["kind"] = self.kind
        if self.name:
            info["name"] = self.name
        info.update(extra)
        return info


def parse_documents(text: str, *, source: str = "<string>") -> List[Document]:
    """Parse every document of *text*, dropping empty ones.

    Raises:
        yaml.YAMLError: If *text* is not valid YAML.
    """
    return [
        Document(source, i, body)
        for i, body in enumerate(yaml.safe_load_all(text))
        if body is not None
    ]


def _get(body: Any, *path: str) -> Any:
    node = body
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def _result(
    check_id: str,
    ok: bool,
    doc: Document,
    remediation: str,
    **extra: Any,
) -> CheckResult:
    return CheckResult(
        id=check_id,
        status=CheckStatus.PASS if ok else CheckStatus.FAIL,
        details=doc.details(**extra),
        remediation="" if ok else remediation,
    )


# ── per-kind checks ──────────────────────────────────────────────────


def check_manifest_fields(doc: Document) -> List[CheckResult]:
    """``apiVersion`` and ``metadata.name`` are mandatory on every object."""
    missing = []
    if not _get(doc.body, "apiVersion"):
        missing.append("apiVersion")
    if not doc.name:
        missing.append("metadata.name")
    return [
        _result(
            "manifest.fields",
            not missing,
            doc,
            f"Set {', '.join(missing)} on the {doc.kind}",
            missing=missing,
        )
    ]


def check_storage_class(doc: Document) -> List[CheckResult]:
    return [
        _result(
            "storageclass.provisioner",
            bool(_get(doc.body, "provisioner")),
            doc,
            "A StorageClass needs a provisioner",
        )
    ]


def check_node_pool(doc: Document) -> List[CheckResult]:
    spec = _get(doc.body, "spec", "template", "spec")
    results = [
        _result(
            "nodepool.node_class_ref",
            isinstance(_get(spec, "nodeClassRef"), dict)
            and bool(_get(spec, "nodeClassRef", "name")),
            doc,
            "Reference an EC2NodeClass in spec.template.spec.nodeClassRef",
        )
    ]
    requirements = _get(spec, "requirements")
    problems: List[str] = []
    if not isinstance(requirements, list) or not requirements:
        problems.append("no requirements")
    else:
        for i, req in enumerate(requirements):
            if not isinstance(req, dict):
                problems.append(f"requirement #{i} is not a mapping")
                continue
            for key in ("key", "operator"):
                if not req.get(key):
                    problems.append(f"requirement #{i} has no {key}")
            if req.get("operator") not in _VALUELESS_OPERATORS and not req.get("values"):
                problems.append(f"requirement #{i} has no values")
    results.append(
        _result(
            "nodepool.requirements",
            not problems,
            doc,
            "Every requirement needs key, operator and values",
            problems=problems,
        )
    )
    return results


def check_pod_disruption_budget(doc: Document) -> List[CheckResult]:
    spec = _get(doc.body, "spec") or {}
    budgets = [k for k in ("minAvailable", "maxUnavailable") if k in spec]
    return [
        _result(
            "pdb.budget",
            len(budgets) == 1,
            doc,
            "Set exactly one of minAvailable / maxUnavailable",
            set_fields=budgets,
        ),
        _result(
            "pdb.selector",
            bool(_get(spec, "selector", "matchLabels")),
            doc,
            "spec.selector.matchLabels must not be empty",
        ),
    ]


def _is_base64(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        return False
    return True


def check_secret(doc: Document) -> List[CheckResult]:
    data = _get(doc.body, "data") or {}
    if isinstance(data, dict):
        bad = sorted(str(k) for k, v in data.items() if not _is_base64(v))
    else:
        bad = ["<data>"]
    return [
        _result(
            "secret.type",
            bool(_get(doc.body, "type")),
            doc,
            "Set the Secret type (Opaque, kubernetes.io/dockerconfigjson...)",
        ),
        _result(
            "secret.data",
            not bad,
            doc,
            "Values under data must be base64 encoded (use stringData for plain text)",
            invalid_keys=bad,
        ),
    ]


def check_ingress(doc: Document) -> List[CheckResult]:
    rules = _get(doc.body, "spec", "rules") or []
    hosts = [r.get("host") for r in rules if isinstance(r, dict) and r.get("host")]
    return [
        _result(
            "ingress.rules",
            bool(hosts),
            doc,
            "An Ingress needs at least one rule with a host",
            hosts=hosts,
        )
    ]


KIND_CHECKS: Dict[str, Callable[[Document], List[CheckResult]]] = {
    "StorageClass": check_storage_class,
    "NodePool": check_node_pool,
    "PodDisruptionBudget": check_pod_disruption_budget,
    "Secret": check_secret,
    "Ingress": check_ingress,
}


# ── cross-document checks ────────────────────────────────────────────


def _is_default_class(doc: Document) -> bool:
    flag = _get(doc.body, "metadata", "annotations", DEFAULT_CLASS_ANNOTATION)
    return str(flag).lower() == "true"


def check_default_storage_classes(docs: Iterable[Document]) -> List[CheckResult]:
    """At most one StorageClass may be the default (WARN when none is)."""
    classes = [d for d in docs if d.kind == "StorageClass"]
    if not classes:
        return []
    defaults = sorted(d.name for d in classes if _is_default_class(d))
    details = {"defaults": defaults, "storage_classes": sorted(d.name for d in classes)}
    if len(defaults) > 1:
        return [
            CheckResult(
                id="storageclass.default",
                status=CheckStatus.FAIL,
                details=details,
                remediation="Mark a single StorageClass as default",
            )
        ]
    if not defaults:
        return [
            CheckResult(
                id="storageclass.default",
                status=CheckStatus.WARN,
                details=details,
                remediation=(
                    "No default StorageClass; claims without storageClassName stay Pending"
                ),
            )
        ]
    return [CheckResult(id="storageclass.default", status=CheckStatus.PASS, details=details)]


def check_placeholders(doc: Document, covered: Set[str]) -> List[CheckResult]:
    """WARN on ``set-by-engine-code`` keys that no ``--set`` value covers."""
    if not isinstance(doc.body, dict):
        return []
    left = [k for k in find_engine_placeholders(doc.body) if k not in covered]
    return [
        CheckResult(
            id="values.placeholders",
            status=CheckStatus.WARN if left else CheckStatus.PASS,
            details=doc.details(placeholders=left),
            remediation="Supply these keys with --set" if left else "",
        )
    ]


# ── entry points ─────────────────────────────────────────────────────


def check_documents(
    docs: List[Document],
    *,
    covered_placeholders: Optional[Set[str]] = None,
) -> List[CheckResult]:
    """Run the per-document checks on *docs*."""
    covered = covered_placeholders or set()
    results: List[CheckResult] = []
    for doc in docs:
        if doc.is_manifest:
            results.extend(check_manifest_fields(doc))
            checker = KIND_CHECKS.get(str(doc.kind))
            if checker is not None:
                results.extend(checker(doc))
        else:
            results.extend(check_placeholders(doc, covered))
    return results


def load_file(path: str | Path) -> Tuple[List[Document], List[CheckResult]]:
    """Parse *path*; a parse failure is reported as a FAIL check, not raised."""
    p = Path(path)
    try:
        docs = parse_documents(p.read_text(encoding="utf-8"), source=str(p))
    except yaml.YAMLError as exc:
        logger.debug("YAML parse failed for %s", p, exc_info=True)
        return [], [
            CheckResult(
                id="yaml.parse",
                status=CheckStatus.FAIL,
                details={"file": str(p), "error": str(exc)},
                remediation="Fix the template so it renders valid YAML",
            )
        ]
    return docs, [CheckResult(id="yaml.parse", status=CheckStatus.PASS, details={"file": str(p)})]


def validate_files(
    paths: Iterable[str | Path],
    *,
    plan_name: Optional[str] = None,
    covered_placeholders: Optional[Set[str]] = None,
    covered_by_file: Optional[Mapping[str, Set[str]]] = None,
) -> ValidationReport:
    """Validate a set of rendered files and aggregate the results.

    *covered_placeholders* applies to every file; *covered_by_file* adds
    the keys a specific file's chart sets (keyed by the path as given).

    Raises:
        FileNotFoundError: If one of *paths* does not exist.
    """
    report = ValidationReport(plan_name=plan_name)
    all_docs: List[Document] = []
    for path in paths:
        p = Path(path)
        if not p.is_file():
            raise FileNotFoundError(f"Rendered file not found: {path}")
        report.files.append(str(p))
        docs, parse_checks = load_file(p)
        report.extend(parse_checks)
        covered = set(covered_placeholders or ())
        covered |= (covered_by_file or {}).get(str(path), set())
        report.extend(check_documents(docs, covered_placeholders=covered))
        all_docs.extend(docs)
    report.extend(check_default_storage_classes(all_docs))
    logger.info(
        "Validated %d file(s): %d failure(s), %d warning(s)",
        len(report.files),
        len(report.failed_checks),
        len(report.warned_checks),
    )
    return report


def collect_yaml_files(root: str | Path) -> List[Path]:
    """Every ``.yaml``/``.yml`` file under *root* (or *root* itself), sorted."""
    base = Path(root)
    if base.is_file():
        return [base]
    if not base.is_dir():
        raise FileNotFoundError(f"No such file or directory: {root}")
    return sorted(
        p for p in base.rglob("*") if p.is_file() and p.suffix in (".yaml", ".yml")
    )
