from flutter_pwa_builder.cli import main

main()
