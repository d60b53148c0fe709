from aumai_skillpublish.cli import main

main()
