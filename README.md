# mirrorkeep

mirrorkeep keeps live mirror copies of directories. You give it a source
directory and one or more target directories. It copies the source into each
target, then watches the source and repeats changes (files and directories
created, files modified, entries moved or deleted) in the targets for as long
as the backup runs. When you need your data back, it restores the source from
a target.

## Installation

```
pip install mirrorkeep
```

It needs a POSIX system. Watching uses the `watchdog` library.

## Usage

Start the interactive shell:

```
mirrorkeep
```

The command takes no options besides `--help`. The shell prints a banner and a
`> ` prompt, and reads one command per line.

| Command | Effect |
|---|---|
| `add <src> <target...>` | Start mirroring `src` into each target. A target has to be an empty directory or absent (it is then created). A target may not be the source, sit inside it, or contain it. The same pair cannot be added twice. At most 32 backups run at a time. Prints `Backup started` for each target that was accepted. |
| `end <src> <target...>` | Stop mirroring `src` into each of the given targets. Prints `Backup ended` or `Backup not found`. |
| `list` | Show the running backups, grouped by source. Each target line shows the id of the thread that does the mirroring. |
| `restore <src> <target>` | Make `src` match the backup in `target`: files whose contents differ are copied back, symlinks are recreated, and anything in `src` that the backup lacks is removed. Files with identical contents are left alone. |
| `exit` | Stop every running backup and leave the shell. |

End of input (Ctrl-D) works the same as `exit`. Any other word prints
`Unknown command`. When a path cannot be resolved, a `realpath: ...` message
goes to standard error.

### Command-line words

Arguments follow shell-style word rules, without running anything:

- single quotes, double quotes and backslashes work as in a shell, so paths
  with spaces can be quoted;
- `$NAME` and `${NAME}` expand to environment variables (empty when unset);
- a leading `~` expands to the home directory;
- unquoted `*`, `?` and `[` are glob patterns; a pattern that matches nothing
  stays as written.

Command substitution (`$(...)` or backquotes), the characters
`| & ; < > ( ) { }` and unbalanced quotes are refused with
`Parse error: <code> on line: <line>`, where the code is 4, 2 or 5
respectively.

### Example session

```
$ mirrorkeep
Commands: add <src> <dst>, end <src> <dst>, list, exit
> add ~/projects /mnt/backup/projects /mnt/usb/projects
Backup started
Backup started
> list
Source: /home/me/projects
  -> /mnt/backup/projects (pid 12345)
  -> /mnt/usb/projects (pid 12346)
> end ~/projects /mnt/usb/projects
Backup ended
> restore ~/projects /mnt/backup/projects
Restoring backup...
Restore complete
> exit
```

## Using it from Python

- `mirrorkeep.commands.BackupManager` provides the shell's operations:
  `add`, `end`, `listing` (returns the lines of `list`), `restore` and
  `cleanup`. Refusals raise `mirrorkeep.commands.BackupError`; paths that
  cannot be resolved raise `OSError`. Each backup runs in a daemon thread.
- `mirrorkeep.commands.parse_command` splits a line into words as described
  above; a refused line raises `BackupError` with its `code` set.
- `mirrorkeep.main.run_shell(manager, lines, out)` runs the command loop over
  any iterable of lines and writes its replies to `out`.
- `mirrorkeep.worker.run_worker(source, target, stop_event)` copies a tree and
  mirrors its changes until the `threading.Event` is set;
  `mirrorkeep.worker.MirrorHandler` and `mirrorkeep.watcher.WatchTable` are the
  event handler and watch bookkeeping it uses.
- `mirrorkeep.fsutils` holds the filesystem helpers: `copy_recursive`,
  `restore_copy`, `restore_cleanup`, `file_hash` (SHA-256), `files_differ`,
  `dir_empty`, `is_subpath`, `map_path` and `real_path`.

## What it does not do

- Backups live only as long as the shell: nothing is saved between runs, and
  `exit` stops them all.
- Mirroring copies file contents and directory permission bits; it does not
  carry over file permissions, owners or timestamps.
- Changes made while no backup is running are not picked up until `restore`
  or a new `add`.
- When a directory is deleted or moved away in the source, its copy in the
  target is not removed; only files and symlinks are removed from the target.