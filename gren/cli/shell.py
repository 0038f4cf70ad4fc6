"""Shell integration scripts printed by ``gren shell-init``.

The wrapper function points ``GREN_DIRECTIVE_FILE`` at a temp file, runs
gren, then sources whatever gren wrote there so that a ``cd`` takes effect
in the calling shell.
"""

SUPPORTED_SHELLS = ("bash", "zsh", "fish")

BASH_ZSH_INIT = r'''# gren shell integration
# eval "$(gren shell-init zsh)"  or  eval "$(gren shell-init bash)"

if command -v gren >/dev/null 2>&1 || [[ -n "${GREN_BIN:-}" ]]; then
    gren() {
        local directive_file exit_code=0
        directive_file="$(mktemp)"

        GREN_DIRECTIVE_FILE="$directive_file" command "${GREN_BIN:-gren}" "$@" || exit_code=$?

        if [[ -s "$directive_file" ]]; then
            source "$directive_file"
            if [[ "$PWD" != "$OLDPWD" ]]; then
                echo "Now in: $(pwd)"
            fi
        fi

        rm -f "$directive_file"
        return "$exit_code"
    }

    alias gcd='gren navigate'
fi
'''

FISH_INIT = r'''# gren shell integration for fish
# gren shell-init fish >> ~/.config/fish/config.fish

if command -v gren >/dev/null 2>&1; or set -q GREN_BIN
    function gren
        set -l directive_file (mktemp)
        set -l exit_code 0
        set -l old_pwd $PWD

        GREN_DIRECTIVE_FILE=$directive_file command (set -q GREN_BIN; and echo $GREN_BIN; or echo gren) $argv
        or set exit_code $status

        if test -s $directive_file
            source $directive_file
            if test "$PWD" != "$old_pwd"
                echo "Now in: "(pwd)
            end
        end

        rm -f $directive_file
        return $exit_code
    end

    alias gcd 'gren navigate'
end
'''


def shell_init(shell: str) -> str:
    """Wrapper script for ``shell``.

    Raises:
        ValueError: If the shell is not supported
    """
    if shell in ("bash", "zsh"):
        return BASH_ZSH_INIT
    if shell == "fish":
        return FISH_INIT
    raise ValueError(f"unsupported shell: {shell} (supported: {', '.join(SUPPORTED_SHELLS)})")
