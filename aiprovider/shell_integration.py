import os
from typing import Optional

SUPPORTED_SHELLS = ("bash", "zsh", "fish")

COMMANDS = {
    "add": "Add a new AI provider",
    "list": "List all configured providers",
    "remove": "Remove a provider",
    "switch": "Switch to a different provider",
    "current": "Show the current active provider",
    "env": "Manage custom environment variables",
    "show": "Show provider details",
    "discover": "Import provider from ~/.claude/settings.json",
    "completion": "Print shell completion script",
    "info": "Show config and settings file locations",
}

_BASH_TEMPLATE = '''# ai-provider bash completion
_ai_provider_complete() {
  local cur prev
  cur="${COMP_WORDS[COMP_CWORD]}"
  prev="${COMP_WORDS[COMP_CWORD-1]}"

  case "$prev" in
    switch|remove|show)
      local providers
      providers=$(ai-provider list --names-only 2>/dev/null)
      COMPREPLY=($(compgen -W "$providers -" -- "$cur"))
      return
      ;;
    completion)
      COMPREPLY=($(compgen -W "%(shells)s" -- "$cur"))
      return
      ;;
  esac

  if [[ "$COMP_CWORD" -eq 1 ]]; then
    COMPREPLY=($(compgen -W "%(commands)s" -- "$cur"))
  fi
}

complete -F _ai_provider_complete ai-provider'''

_ZSH_TEMPLATE = '''#compdef ai-provider

_ai_provider_complete() {
  local state

  _arguments \\
    '1: :->command' \\
    '*: :->args'

  case $state in
    command)
      local commands=(
%(commands)s
      )
      _describe 'command' commands
      ;;
    args)
      case $words[2] in
        switch|remove|show)
          local providers
          providers=($(ai-provider list --names-only 2>/dev/null))
          local special=('-:Switch to previous provider')
          _describe 'provider' providers
          _describe 'special' special
          ;;
        completion)
          local shells=(%(shells)s)
          _describe 'shell' shells
          ;;
      esac
      ;;
  esac
}

_ai_provider_complete'''

_FISH_HEADER = '''# ai-provider fish completion

function __fish_ai_provider_complete
  ai-provider list --names-only 2>/dev/null
end
'''

_FISH_FOOTER = '''
complete -c ai-provider -f -n "__fish_seen_subcommand_from switch remove show" -a "(__fish_ai_provider_complete)"
complete -c ai-provider -f -n "__fish_seen_subcommand_from switch" -a "-" -d "Switch to previous provider"
complete -c ai-provider -f -n "__fish_seen_subcommand_from completion" -a "%(shells)s"'''


class ShellIntegration:
    def get_shell_type(self) -> str:
        """检测当前shell类型"""
        shell = os.environ.get('SHELL', '')
        if 'zsh' in shell:
            return 'zsh'
        elif 'fish' in shell:
            return 'fish'
        else:
            return 'bash'  # 默认bash

    def get_completion_script(self, shell: Optional[str] = None) -> str:
        """生成指定shell的补全脚本"""
        shell = shell or self.get_shell_type()
        if shell not in SUPPORTED_SHELLS:
            raise ValueError(
                f"Unsupported shell '{shell}'. Supported: {', '.join(SUPPORTED_SHELLS)}"
            )

        shells = " ".join(SUPPORTED_SHELLS)
        if shell == 'bash':
            return _BASH_TEMPLATE % {"commands": " ".join(COMMANDS), "shells": shells}
        elif shell == 'zsh':
            entries = "\n".join(f"        '{name}:{desc}'" for name, desc in COMMANDS.items())
            return _ZSH_TEMPLATE % {"commands": entries, "shells": shells}

        lines = [_FISH_HEADER]
        for name, desc in COMMANDS.items():
            lines.append(
                f'complete -c ai-provider -f -n "__fish_use_subcommand" -a "{name}" -d "{desc}"'
            )
        lines.append(_FISH_FOOTER % {"shells": shells})
        return "\n".join(lines)
