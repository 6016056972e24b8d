"""Graphviz description of references and the commits they reach."""
import logging
import subprocess
from typing import Callable, TypeAlias

from . import base
from . import data
from .data import Repository

logger = logging.getLogger(__name__)

# Called with the Graphviz description and the output file name.
Renderer: TypeAlias = Callable[[bytes, str], None]


def describe(repo: Repository) -> str:
    dot = 'digraph commits {\n'

    oids = []
    for refname, ref in data.iter_refs(repo, deref=False):
        dot += f'"{refname}" [shape=note]\n'
        dot += f'"{refname}" -> "{ref.value}"\n'
        if not ref.symbolic:
            oids.append(ref.value)

    for oid in base.iter_commits_and_parents(repo, oids):
        commit_ = base.get_commit(repo, oid)
        dot += f'"{oid}" [shape=box style=filled label="{oid[:10]}"]\n'
        if commit_.parent:
            dot += f'"{oid}" -> "{commit_.parent}"\n'

    dot += '}'
    return dot


def run_dot(dot: bytes, output: str):
    with subprocess.Popen(
            ['dot', '-Tpng', f'-o{output}'],
            stdin=subprocess.PIPE
    ) as proc:
        proc.communicate(dot)


def render(dot: str, output: str = 'graph.png', renderer: Renderer = run_dot):
    logger.debug('Rendering commit graph to %s', output)
    renderer(dot.encode(), output)
