from dirbuilder.cli import main

raise SystemExit(main())
