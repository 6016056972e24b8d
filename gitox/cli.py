import argparse
import logging
import os
import sys
import textwrap

from . import base
from . import data
from . import diff
from . import graph
from .errors import GitoxError


def main(argv=None):
    logging.basicConfig(level=os.environ.get('GITOX_LOG_LEVEL', 'WARNING').upper())
    repo = data.Repository(os.getcwd())
    try:
        args = parse_args(repo, argv)
        args.func(repo, args)
    except GitoxError as e:
        print(f'fatal: {e}', file=sys.stderr)
        sys.exit(1)


def parse_args(repo, argv=None):
    parser = argparse.ArgumentParser(prog='gitox')
    commands = parser.add_subparsers(dest='command')
    commands.required = True

    def oid(name):
        return base.get_oid(repo, name)

    init_parser = commands.add_parser('init')
    init_parser.set_defaults(func=init)

    hash_object_parser = commands.add_parser('hash-object')
    hash_object_parser.set_defaults(func=hash_object)
    hash_object_parser.add_argument('file')

    cat_file_parser = commands.add_parser('cat-file')
    cat_file_parser.set_defaults(func=cat_file)
    cat_file_parser.add_argument('object', type=oid)

    write_tree_parser = commands.add_parser('write-tree')
    write_tree_parser.set_defaults(func=write_tree)

    read_tree_parser = commands.add_parser('read-tree')
    read_tree_parser.set_defaults(func=read_tree)
    read_tree_parser.add_argument('tree', type=oid)

    commit_parser = commands.add_parser('commit')
    commit_parser.set_defaults(func=commit)
    commit_parser.add_argument('-m', '--message', required=True)

    log_parser = commands.add_parser('log')
    log_parser.set_defaults(func=log)
    log_parser.add_argument('oid', default='@', type=oid, nargs='?')

    show_parser = commands.add_parser('show')
    show_parser.set_defaults(func=show)
    show_parser.add_argument('oid', default='@', type=oid, nargs='?')

    diff_parser = commands.add_parser('diff')
    diff_parser.set_defaults(func=_diff)
    diff_parser.add_argument('commit', default='@', type=oid, nargs='?')

    checkout_parser = commands.add_parser('checkout')
    checkout_parser.set_defaults(func=checkout)
    checkout_parser.add_argument('commit')

    reset_parser = commands.add_parser('reset')
    reset_parser.set_defaults(func=reset)
    reset_parser.add_argument('commit', type=oid)

    tag_parser = commands.add_parser('tag')
    tag_parser.set_defaults(func=tag)
    tag_parser.add_argument('name')
    tag_parser.add_argument('oid', default='@', type=oid, nargs='?')

    branch_parser = commands.add_parser('branch')
    branch_parser.set_defaults(func=branch)
    branch_parser.add_argument('name', nargs='?')
    branch_parser.add_argument('start_point', default='@', nargs='?')

    status_parser = commands.add_parser('status')
    status_parser.set_defaults(func=status)

    k_parser = commands.add_parser('k')
    k_parser.set_defaults(func=k)

    return parser.parse_args(argv)


def init(repo, args):
    base.init(repo)
    print(f'Initialized empty gitox repository in {repo.git_dir}')


def hash_object(repo, args):
    with open(args.file, 'rb') as f:
        print(data.hash_object(repo, f.read()))


def cat_file(repo, args):
    sys.stdout.flush()
    sys.stdout.buffer.write(data.get_object(repo, args.object, expected=None))


def write_tree(repo, args):
    print(base.write_tree(repo))


def read_tree(repo, args):
    base.read_tree(repo, args.tree)


def commit(repo, args):
    print(base.commit(repo, args.message))


def _print_commit(oid, commit_, refs=None):
    refs_str = f' ({", ".join(refs)})' if refs else ''
    print(f'commit {oid}{refs_str}\n')
    print(textwrap.indent(commit_.message, '    '))
    print('')


def log(repo, args):
    refs = {}
    for refname, ref in data.iter_refs(repo):
        refs.setdefault(ref.value, []).append(refname)

    for oid in base.iter_commits_and_parents(repo, [args.oid]):
        commit_ = base.get_commit(repo, oid)
        _print_commit(oid, commit_, refs.get(oid))


def show(repo, args):
    commit_ = base.get_commit(repo, args.oid)
    parent_tree = None
    if commit_.parent:
        parent_tree = base.get_commit(repo, commit_.parent).tree

    _print_commit(args.oid, commit_)
    result = diff.diff_trees(
        repo, base.get_tree(repo, parent_tree), base.get_tree(repo, commit_.tree))
    sys.stdout.flush()
    sys.stdout.buffer.write(result)


def _diff(repo, args):
    tree = base.get_commit(repo, args.commit).tree
    result = diff.diff_trees(repo, base.get_tree(repo, tree), base.get_working_tree(repo))
    sys.stdout.flush()
    sys.stdout.buffer.write(result)


def checkout(repo, args):
    base.checkout(repo, args.commit)


def reset(repo, args):
    base.reset(repo, args.commit)


def tag(repo, args):
    base.create_tag(repo, args.name, args.oid)


def branch(repo, args):
    if not args.name:
        current = base.get_branch_name(repo)
        for branch_ in base.iter_branch_names(repo):
            prefix = '*' if branch_ == current else ' '
            print(f'{prefix} {branch_}')
    else:
        start_point = base.get_oid(repo, args.start_point)
        base.create_branch(repo, args.name, start_point)
        print(f"Branch '{args.name}' created at {start_point[:10]}")


def status(repo, args):
    HEAD = data.get_ref(repo, 'HEAD').value
    branch_ = base.get_branch_name(repo)
    if branch_:
        print(f'On branch {branch_}')
    else:
        print(f'HEAD detached at {HEAD[:10]}')

    print('\nChanges to be committed:\n')
    HEAD_tree = HEAD and base.get_commit(repo, HEAD).tree
    for path, action in diff.iter_changed_files(base.get_tree(repo, HEAD_tree),
                                                base.get_working_tree(repo)):
        print(f'{action:>12}: {path}')


def k(repo, args):
    output_file_name = 'graph.png'
    graph.render(graph.describe(repo), output_file_name)
    print(f'graph available at ./{output_file_name}')
