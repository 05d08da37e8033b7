from claude_shell.cli import main

main()
