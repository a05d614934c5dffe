from gstt.main import main

raise SystemExit(main())
