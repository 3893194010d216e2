"""Click helpers for the sync-direction flags."""
import click


class ExclusiveFlag(click.Option):
    """Boolean flag that cannot be combined with the flags in `excludes`.

    `--no-pull` and `--no-push` together would leave nothing to
    synchronize, so the combination is rejected while parsing.
    """

    def __init__(self, *args, excludes=(), **kwargs):
        self.excludes = tuple(excludes)
        kwargs.setdefault("is_flag", True)
        super().__init__(*args, **kwargs)

    def handle_parse_result(self, ctx, opts, args):
        if opts.get(self.name):
            clashing = [name for name in self.excludes if opts.get(name)]
            if clashing:
                flags = " and ".join(_flag(name) for name in (self.name, *clashing))
                raise click.UsageError(
                    f"{flags} are mutually exclusive: nothing would be synchronized",
                    ctx=ctx,
                )
        return super().handle_parse_result(ctx, opts, args)


def _flag(name: str) -> str:
    return "--" + name.replace("_", "-")
